"""
Network download manager with redirect handling, idle timeout and retries.

This module provides:
- Streaming HTTP/HTTPS downloads straight to disk
- Explicit, bounded redirect following (no recursion)
- Progress reporting (bytes, percentage, speed, ETA)
- Retry logic with linear backoff
- Guaranteed removal of partial files on every failure path
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional
from urllib.parse import urljoin, urlparse

import requests
from requests.exceptions import RequestException, Timeout, ConnectionError

from devbins.core.exceptions import (
    DownloadError,
    DownloadTimeoutError,
    HttpStatusError,
    NetworkError,
    RedirectError,
)
from devbins.core.filesystem import safe_unlink

logger = logging.getLogger(__name__)

USER_AGENT = "devbins-setup"
DEFAULT_API_BASE = "https://api.github.com"
DEFAULT_TIMEOUT = 300.0
DEFAULT_MAX_REDIRECTS = 5
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 2.0
CHUNK_SIZE = 64 * 1024

REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})
AUTHENTICATED_HOSTS = ("github.com", "githubusercontent.com")


@dataclass
class DownloadProgress:
    """Progress information for a download."""

    bytes_downloaded: int
    total_bytes: int
    percentage: float
    speed_bps: float  # bytes per second
    eta_seconds: float  # estimated time remaining

    def __str__(self) -> str:
        return format_progress(self)


class AttemptOutcome(Enum):
    """Outcome of a single fetch attempt."""

    PENDING = "pending"
    SUCCESS = "success"
    TIMEOUT = "timeout"
    HTTP_ERROR = "http-error"
    NETWORK_ERROR = "network-error"


@dataclass
class DownloadAttempt:
    """Transient record of one fetch; never persisted."""

    url: str
    destination: Path
    bytes_received: int = 0
    outcome: AttemptOutcome = AttemptOutcome.PENDING
    error: Optional[str] = None


def is_authenticated_host(url: str) -> bool:
    """Check whether the token may be sent to this URL's host."""
    host = (urlparse(url).hostname or "").lower()
    return any(host == h or host.endswith("." + h) for h in AUTHENTICATED_HOSTS)


def build_download_headers(url: str, token: Optional[str] = None) -> dict:
    """
    Build request headers for an asset download.

    The token is only attached for GitHub hosts so it never leaks to
    third-party mirrors reached through redirects.
    """
    headers = {"User-Agent": USER_AGENT, "Accept": "*/*"}
    if token and is_authenticated_host(url):
        headers["Authorization"] = f"Bearer {token}"
    return headers


class Fetcher:
    """
    Stream a single URL to a local file.

    Example:
        >>> fetcher = Fetcher(timeout=60)
        >>> fetcher.fetch("https://example.com/tool.zip", Path("tool.zip"))
        1048576
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        token: Optional[str] = None,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
        progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    ):
        """
        Initialize fetcher.

        Args:
            session: requests session to reuse (a new one is created if None)
            timeout: Idle timeout in seconds for connect and for each read
            token: Optional bearer token for GitHub hosts
            max_redirects: Maximum number of redirects to follow
            progress_callback: Optional callback for progress updates
        """
        self.session = session or requests.Session()
        self.timeout = timeout
        self.token = token
        self.max_redirects = max_redirects
        self.progress_callback = progress_callback

    def fetch(
        self, url: str, destination: Path, attempt: Optional[DownloadAttempt] = None
    ) -> int:
        """
        Download `url` to `destination`.

        Args:
            url: URL to download from
            destination: Local path to save file
            attempt: Optional record updated with byte count and outcome

        Returns:
            Number of bytes written

        Raises:
            RedirectError: Redirect without Location, or redirect cap exceeded
            HttpStatusError: Non-200, non-redirect response
            DownloadTimeoutError: Transfer stalled past the idle timeout
            NetworkError: Connection-level failure
        """
        if not url:
            raise ValueError("URL cannot be empty")
        if not destination:
            raise ValueError("Destination path cannot be empty")

        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        attempt = attempt or DownloadAttempt(url=url, destination=destination)

        try:
            written = self._fetch(url, destination, attempt)
        except DownloadTimeoutError as e:
            attempt.outcome = AttemptOutcome.TIMEOUT
            attempt.error = str(e)
            raise
        except (HttpStatusError, RedirectError) as e:
            attempt.outcome = AttemptOutcome.HTTP_ERROR
            attempt.error = str(e)
            raise
        except NetworkError as e:
            attempt.outcome = AttemptOutcome.NETWORK_ERROR
            attempt.error = str(e)
            raise

        attempt.outcome = AttemptOutcome.SUCCESS
        return written

    def _fetch(self, url: str, destination: Path, attempt: DownloadAttempt) -> int:
        current_url = url

        for _ in range(self.max_redirects + 1):
            # A previous hop may have left a file behind
            safe_unlink(destination)
            response = self._request(current_url)
            try:
                if response.status_code in REDIRECT_STATUSES:
                    location = response.headers.get("Location")
                    if not location:
                        raise RedirectError(
                            f"Redirect without location for {current_url}",
                            url=current_url,
                        )
                    current_url = urljoin(current_url, location)
                    logger.info(f"Redirected to {current_url}")
                    continue

                if response.status_code != 200:
                    raise HttpStatusError(
                        current_url,
                        response.status_code,
                        response.headers.get("Content-Length"),
                    )

                written = self._write_body(response, current_url, destination, attempt)
            finally:
                response.close()

            if written:
                logger.info(f"Downloaded {format_bytes(written)} from {current_url}")
            else:
                logger.warning(f"Downloaded {format_bytes(written)} from {current_url}")
            return written

        raise RedirectError(
            f"Too many redirects (more than {self.max_redirects}) for {url}", url=url
        )

    def _request(self, url: str) -> requests.Response:
        try:
            return self.session.get(
                url,
                headers=build_download_headers(url, self.token),
                stream=True,
                timeout=self.timeout,
                allow_redirects=False,
            )
        except Timeout as e:
            raise DownloadTimeoutError(f"Download timeout for {url}: {e}", url=url) from e
        except (ConnectionError, RequestException) as e:
            raise NetworkError(f"Download error for {url}: {e}", url=url) from e

    def _write_body(
        self,
        response: requests.Response,
        url: str,
        destination: Path,
        attempt: DownloadAttempt,
    ) -> int:
        """
        Stream the response body to disk.

        The destination is removed unless the whole body was written,
        including when the transfer is interrupted by KeyboardInterrupt.
        """
        content_length = response.headers.get("Content-Length")
        total_size = int(content_length) if content_length and content_length.isdigit() else 0

        downloaded = 0
        start_time = time.time()
        last_progress_time = start_time
        completed = False

        try:
            with open(destination, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if not chunk:
                        continue
                    f.write(chunk)
                    downloaded += len(chunk)
                    attempt.bytes_received = downloaded

                    # Report progress (max once per 0.5 seconds to avoid spam)
                    current_time = time.time()
                    if self.progress_callback and (
                        current_time - last_progress_time >= 0.5
                        or downloaded == total_size
                    ):
                        self.progress_callback(
                            _make_progress(downloaded, total_size, start_time, current_time)
                        )
                        last_progress_time = current_time
            completed = True
        except Timeout as e:
            logger.error(f"Download error for {url}: {e}")
            raise DownloadTimeoutError(f"Download timeout for {url}: {e}", url=url) from e
        except (ConnectionError, RequestException) as e:
            logger.error(f"Download error for {url}: {e}")
            raise NetworkError(f"Download error for {url}: {e}", url=url) from e
        finally:
            if not completed:
                safe_unlink(destination)

        return downloaded


class RetryController:
    """
    Wrap a Fetcher with bounded retries and linear backoff.

    Every fetch error is retried the same way; attempt N waits
    `base_delay * N` seconds before attempt N + 1.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_RETRY_DELAY,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.fetcher = fetcher
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.attempts: List[DownloadAttempt] = []

    def fetch_with_retry(self, url: str, destination: Path) -> int:
        """
        Download with retries.

        Args:
            url: URL to download from
            destination: Local path to save file

        Returns:
            Number of bytes written by the successful attempt

        Raises:
            DownloadError: The last error once all attempts are exhausted
        """
        destination = Path(destination)
        self.attempts = []

        for attempt_number in range(1, self.max_attempts + 1):
            attempt = DownloadAttempt(url=url, destination=destination)
            self.attempts.append(attempt)
            logger.info(
                f"Downloading {url} (attempt {attempt_number}/{self.max_attempts})..."
            )
            try:
                return self.fetcher.fetch(url, destination, attempt=attempt)
            except DownloadError as e:
                safe_unlink(destination)
                if attempt_number == self.max_attempts:
                    raise
                logger.warning(
                    f"Download failed for {url} "
                    f"(attempt {attempt_number}/{self.max_attempts}): {e}"
                )
                time.sleep(self.base_delay * attempt_number)


def _make_progress(
    downloaded: int, total_size: int, start_time: float, current_time: float
) -> DownloadProgress:
    elapsed = current_time - start_time
    speed = downloaded / elapsed if elapsed > 0 else 0
    remaining = total_size - downloaded if total_size > 0 else 0
    eta = remaining / speed if speed > 0 else 0

    return DownloadProgress(
        bytes_downloaded=downloaded,
        total_bytes=total_size if total_size > 0 else downloaded,
        percentage=(downloaded / total_size * 100) if total_size > 0 else 0,
        speed_bps=speed,
        eta_seconds=eta,
    )


def format_bytes(num_bytes: int) -> str:
    """
    Format a byte count the way download logs show it.

    Example:
        >>> format_bytes(5 * 1024 * 1024)
        '5 MB'
    """
    if not num_bytes or num_bytes <= 0:
        return "unknown size"
    if num_bytes >= 1024 * 1024:
        return f"{round(num_bytes / (1024 * 1024))} MB"
    return f"{round(num_bytes / 1024)} KB"


def format_progress(progress: DownloadProgress) -> str:
    """
    Format progress for display.

    Example:
        >>> progress = DownloadProgress(52428800, 104857600, 50.0, 1048576, 50)
        >>> print(format_progress(progress))
        50.0/100.0 MB (50.0%) at 1.0 MB/s ETA: 50s
    """
    mb_downloaded = progress.bytes_downloaded / 1024 / 1024
    mb_total = progress.total_bytes / 1024 / 1024
    speed_mbps = progress.speed_bps / 1024 / 1024

    if progress.total_bytes > 0 and progress.percentage > 0:
        return (
            f"{mb_downloaded:.1f}/{mb_total:.1f} MB "
            f"({progress.percentage:.1f}%) "
            f"at {speed_mbps:.1f} MB/s "
            f"ETA: {progress.eta_seconds:.0f}s"
        )
    else:
        # Unknown total size
        return f"{mb_downloaded:.1f} MB at {speed_mbps:.1f} MB/s"
