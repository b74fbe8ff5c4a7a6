"""
Centralized exception hierarchy for devbins.

Every error raised while provisioning a dependency derives from
DevbinsError, so callers can catch one type and still report the
dependency name, the attempted URL and the underlying diagnostic.
"""

from typing import List, Optional


# ============================================================================
# Base Exceptions
# ============================================================================


class DevbinsError(Exception):
    """Base exception for all devbins errors."""

    def __init__(self, message: str = "", url: Optional[str] = None):
        super().__init__(message)
        self.url = url
        self.dependency: Optional[str] = None

    def add_context(
        self, dependency: Optional[str] = None, url: Optional[str] = None
    ) -> "DevbinsError":
        """
        Attach dependency/URL context without overwriting existing values.

        Returns:
            The exception itself, so it can be re-raised inline
        """
        if dependency and not self.dependency:
            self.dependency = dependency
        if url and not self.url:
            self.url = url
        return self


class UnsupportedPlatformError(DevbinsError):
    """Raised when no platform profile exists for the running OS/architecture."""

    def __init__(self, os_name: str, arch: str):
        self.os_name = os_name
        self.arch = arch
        super().__init__(f"Unsupported platform: {os_name}-{arch}")


# ============================================================================
# Download Exceptions
# ============================================================================


class DownloadError(DevbinsError):
    """Base exception for failed fetches."""

    pass


class NetworkError(DownloadError):
    """Connection reset, DNS failure or another transport-level problem."""

    pass


class DownloadTimeoutError(DownloadError):
    """Transfer stalled longer than the configured idle timeout."""

    pass


class HttpStatusError(DownloadError):
    """Server answered with a status that is neither 200 nor a redirect."""

    def __init__(
        self, url: str, status_code: int, content_length: Optional[str] = None
    ):
        self.status_code = status_code
        self.content_length = content_length
        super().__init__(
            f"Failed to download {url}: {status_code} "
            f"(length: {content_length or 'unknown'})",
            url=url,
        )


class RedirectError(DownloadError):
    """Redirect without a Location header, or too many redirects."""

    pass


# ============================================================================
# Release Resolution Exceptions
# ============================================================================


class ResolverExhaustedError(DevbinsError):
    """Raised when every candidate repository failed to yield an asset."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        detail = "; ".join(self.errors) if self.errors else "no candidates"
        super().__init__(f"No release asset could be resolved: {detail}")


# ============================================================================
# Install Exceptions
# ============================================================================


class InstallError(DevbinsError):
    """Base exception for failures after the download step."""

    pass


class ExtractionError(InstallError):
    """Archive extraction tool failed."""

    def __init__(self, message: str, output: str = ""):
        self.output = output
        super().__init__(f"{message}: {output}" if output else message)


class MissingBinaryError(InstallError):
    """Expected binary not found inside the extracted archive."""

    pass


class ValidationError(InstallError):
    """Installed binary failed its check invocation."""

    pass


__all__ = [
    "DevbinsError",
    "UnsupportedPlatformError",
    "DownloadError",
    "NetworkError",
    "DownloadTimeoutError",
    "HttpStatusError",
    "RedirectError",
    "ResolverExhaustedError",
    "InstallError",
    "ExtractionError",
    "MissingBinaryError",
    "ValidationError",
]
