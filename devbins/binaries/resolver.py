"""
Latest-release asset resolution.

Upstream artifact names change with every nightly, so the first choice for
an archived dependency is to ask the hosting API which asset the latest
release actually carries. Candidate repositories are tried in order; the
static URL in the profile table is only a last resort used by the
installer when every candidate fails.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

import requests
from requests.exceptions import RequestException

from devbins.binaries.profiles import ReleaseFallback
from devbins.core.download import DEFAULT_API_BASE, USER_AGENT
from devbins.core.exceptions import ResolverExhaustedError

logger = logging.getLogger(__name__)

_ARCHIVE_NAME = re.compile(r"^(.*)\.(tar\.xz|zip)$", re.IGNORECASE)


@dataclass(frozen=True)
class ResolvedAsset:
    """Asset picked from a release."""

    name: str
    url: str
    repository: str
    inner_path: Optional[str] = None


def derive_inner_path(asset_name: str, template: str) -> Optional[str]:
    """
    Derive the binary's path inside an archive from the asset name.

    Args:
        asset_name: Asset file name, e.g. 'ffmpeg-n7.1-linux64-gpl.tar.xz'
        template: Inner path template using `{stem}`

    Returns:
        The inner path, or None if the name has no known archive extension

    Example:
        >>> derive_inner_path('proj-v1.tar.xz', '{stem}/bin/tool')
        'proj-v1/bin/tool'
    """
    if not asset_name:
        return None
    match = _ARCHIVE_NAME.match(asset_name)
    if not match:
        return None
    return template.format(stem=match.group(1))


class ReleaseAssetResolver:
    """Query "latest release" metadata and pick a matching asset."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        token: Optional[str] = None,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 30.0,
    ):
        self.session = session or requests.Session()
        self.token = token
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout

    def _headers(self) -> dict:
        headers = {
            "User-Agent": USER_AGENT,
            "Accept": "application/vnd.github+json",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def latest_release_url(self, repository: str) -> str:
        return f"{self.api_base}/repos/{repository}/releases/latest"

    def fetch_latest_release(self, repository: str) -> dict:
        """
        Fetch the latest release metadata of a repository.

        Raises:
            RuntimeError: On transport failure, non-200 status or invalid JSON
        """
        url = self.latest_release_url(repository)
        try:
            response = self.session.get(
                url,
                headers=self._headers(),
                timeout=self.timeout,
                allow_redirects=True,
            )
        except RequestException as e:
            raise RuntimeError(f"Failed to fetch {url}: {e}") from e

        if response.status_code != 200:
            raise RuntimeError(f"Failed to fetch {url}: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise RuntimeError(f"Failed to parse JSON from {url}: {e}") from e

        if not isinstance(data, dict):
            raise RuntimeError(f"Unexpected release payload from {url}")
        return data

    def resolve(self, fallback: Optional[ReleaseFallback]) -> Optional[ResolvedAsset]:
        """
        Pick the first matching asset across candidate repositories.

        Args:
            fallback: Release lookup configuration

        Returns:
            ResolvedAsset, or None when no candidates are configured

        Raises:
            ResolverExhaustedError: If every candidate repository failed
        """
        if fallback is None or not fallback.repositories:
            return None

        errors: List[str] = []
        for repository in fallback.repositories:
            try:
                release = self.fetch_latest_release(repository)
            except RuntimeError as e:
                logger.debug(f"Release lookup failed for {repository}: {e}")
                errors.append(str(e))
                continue

            asset = self._match_asset(release, fallback)
            if asset is None:
                errors.append(f"No matching assets found in {repository}")
                continue

            name = asset["name"]
            inner_path = fallback.inner_path
            if inner_path is None and fallback.inner_path_template:
                inner_path = derive_inner_path(name, fallback.inner_path_template)

            logger.info(f"Resolved {name} from {repository}")
            return ResolvedAsset(
                name=name,
                url=asset["browser_download_url"],
                repository=repository,
                inner_path=inner_path,
            )

        raise ResolverExhaustedError(errors)

    @staticmethod
    def _match_asset(release: dict, fallback: ReleaseFallback) -> Optional[dict]:
        assets = release.get("assets")
        if not isinstance(assets, list):
            return None
        for asset in assets:
            if not isinstance(asset, dict):
                continue
            name = asset.get("name")
            url = asset.get("browser_download_url")
            if not isinstance(name, str) or not isinstance(url, str):
                continue
            if fallback.asset_pattern.search(name):
                return asset
        return None
