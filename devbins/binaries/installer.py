"""
Per-dependency binary installer.

Drives one dependency through check-existing, resolve, download, extract,
locate, copy, mark-executable and validate. The final output path is only
ever written by an atomic rename of a staged copy that already passed
validation, so a failed or interrupted install never leaves a truncated
binary behind, and an existing binary is never removed by a failed
re-install.
"""

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

from devbins.binaries.extractor import get_extractor
from devbins.binaries.profiles import DependencySpec
from devbins.binaries.resolver import ReleaseAssetResolver
from devbins.core.download import RetryController
from devbins.core.exceptions import (
    DevbinsError,
    InstallError,
    MissingBinaryError,
    ResolverExhaustedError,
    ValidationError,
)
from devbins.core.filesystem import (
    FilesystemError,
    is_relative_to,
    safe_rmtree,
    safe_unlink,
    set_executable,
)

logger = logging.getLogger(__name__)

DEFAULT_VALIDATION_TIMEOUT = 8.0


class InstallStatus(Enum):
    """Outcome of provisioning one dependency."""

    ALREADY_PRESENT = "already-present"
    INSTALLED = "installed"
    FAILED = "failed"


@dataclass
class CheckResult:
    """Result of running a binary's check invocation."""

    ok: bool
    message: str


@dataclass
class InstallResult:
    """Per-dependency outcome, collected into a SetupReport."""

    name: str
    status: InstallStatus
    path: Optional[Path] = None
    url: Optional[str] = None
    message: str = ""
    warning: Optional[str] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.status is not InstallStatus.FAILED

    @classmethod
    def failure(cls, name: str, error: BaseException) -> "InstallResult":
        return cls(
            name=name,
            status=InstallStatus.FAILED,
            url=getattr(error, "url", None),
            message=str(error),
            error=error,
        )

    def __str__(self) -> str:
        text = f"{self.name}: {self.status.value}"
        if self.status is InstallStatus.FAILED:
            text += f" ({self.message})"
            if self.url:
                text += f" [url: {self.url}]"
        elif self.message:
            text += f" - {self.message}"
        if self.warning:
            text += f" (warning: {self.warning})"
        return text


def validate_binary(
    path: Union[str, Path],
    args: Sequence[str],
    timeout: float = DEFAULT_VALIDATION_TIMEOUT,
    label: Optional[str] = None,
) -> CheckResult:
    """
    Run a binary with its check arguments.

    Success is exit code zero. The message is the first non-blank line of
    combined stdout/stderr on success, and the output (or exit code) on
    failure.

    Args:
        path: Binary to invoke
        args: Check arguments, e.g. ['--version']
        timeout: Execution timeout in seconds
        label: Name used in the fallback confirmation message

    Returns:
        CheckResult
    """
    label = label or Path(path).name
    try:
        result = subprocess.run(
            [str(path), *args],
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
            creationflags=getattr(subprocess, "CREATE_NO_WINDOW", 0),
        )
    except subprocess.TimeoutExpired:
        return CheckResult(ok=False, message=f"timed out after {timeout:g}s")
    except OSError as e:
        return CheckResult(ok=False, message=str(e))

    output = f"{result.stdout or ''}\n{result.stderr or ''}".strip()
    if result.returncode != 0:
        return CheckResult(ok=False, message=output or f"exit code {result.returncode}")

    first_line = next(
        (line.strip() for line in output.splitlines() if line.strip()), None
    )
    return CheckResult(ok=True, message=first_line or f"{label} version check ok")


def staged_name(output: str) -> str:
    """
    Name of the staged copy validated before the final rename.

    The .exe suffix is kept so the staged file can be executed on Windows.

    Example:
        >>> staged_name('ffmpeg.exe')
        '.ffmpeg.tmp.exe'
    """
    path = Path(output)
    if path.suffix.lower() == ".exe":
        return f".{path.stem}.tmp{path.suffix}"
    return f".{output}.tmp"


class BinaryInstaller:
    """
    Install dependencies into one output directory.

    Example:
        >>> installer = BinaryInstaller(Path("resources"), downloader, resolver)
        >>> installer.install(profile.get("ffmpeg"))
    """

    def __init__(
        self,
        output_dir: Path,
        downloader: RetryController,
        resolver: Optional[ReleaseAssetResolver] = None,
        windows: bool = os.name == "nt",
        validation_timeout: Optional[float] = None,
    ):
        """
        Initialize installer.

        Args:
            output_dir: Directory receiving the final binaries
            downloader: Retry-wrapped fetcher
            resolver: Release asset resolver (static URLs only if None)
            windows: Whether targets are Windows binaries (no chmod)
            validation_timeout: Overrides each dependency's check timeout
        """
        self.output_dir = Path(output_dir)
        self.downloader = downloader
        self.resolver = resolver
        self.windows = windows
        self.validation_timeout = validation_timeout

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def final_path(self, spec: DependencySpec) -> Path:
        return self.output_dir / spec.output

    def download_path(self, spec: DependencySpec) -> Path:
        if spec.is_archived:
            return self.output_dir / f"{spec.name}-temp{spec.archive_suffix}"
        return self.output_dir / f".{spec.name}.download.tmp"

    def scratch_dir(self, spec: DependencySpec) -> Path:
        return self.output_dir / f"{spec.name}-temp"

    def staged_path(self, spec: DependencySpec) -> Path:
        return self.output_dir / staged_name(spec.output)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def validate(self, spec: DependencySpec, path: Path) -> CheckResult:
        """Run the dependency's check; used for existing and fresh files alike."""
        timeout = self.validation_timeout or spec.validation.timeout
        return validate_binary(path, spec.validation.args, timeout=timeout, label=spec.name)

    def check_existing(self, spec: DependencySpec) -> Optional[InstallResult]:
        """
        Validate an already-present binary without touching it.

        Returns:
            ALREADY_PRESENT result, or None if the final path does not exist
        """
        final = self.final_path(spec)
        if not final.exists():
            return None

        check = self.validate(spec, final)
        warning = None
        if not check.ok:
            warning = f"existing {spec.output} failed version check: {check.message}"
            logger.warning(f"Existing {spec.output} failed version check: {check.message}")
        logger.info(f"{spec.output} already exists, skipping download")

        return InstallResult(
            name=spec.name,
            status=InstallStatus.ALREADY_PRESENT,
            path=final,
            message=check.message if check.ok else "",
            warning=warning,
        )

    def resolve_source(self, spec: DependencySpec) -> Tuple[str, Optional[str]]:
        """
        Choose the download URL and inner path.

        The release lookup wins when it succeeds; otherwise the static URL
        and inner path from the profile are used.
        """
        url, inner_path = spec.url, spec.inner_path
        if spec.release is None or self.resolver is None:
            return url, inner_path

        try:
            resolved = self.resolver.resolve(spec.release)
        except ResolverExhaustedError as e:
            logger.warning(f"Failed to resolve latest {spec.name} asset: {e}")
            return url, inner_path

        if resolved is None:
            return url, inner_path

        if resolved.inner_path:
            inner_path = resolved.inner_path
        else:
            logger.debug(
                f"Could not derive inner path from {resolved.name}, "
                f"keeping {inner_path}"
            )
        return resolved.url, inner_path

    def locate(self, spec: DependencySpec, scratch: Path, inner_path: str) -> Path:
        """
        Find the binary inside the extracted archive.

        Raises:
            MissingBinaryError: If nothing exists at the inner path
        """
        parts = [p for p in inner_path.replace("\\", "/").split("/") if p]
        source = scratch.joinpath(*parts)
        if not is_relative_to(source.resolve(), scratch.resolve()) or not source.is_file():
            raise MissingBinaryError(f"{spec.name} binary not found at {source}")
        return source

    def install(self, spec: DependencySpec, force: bool = False) -> InstallResult:
        """
        Provision one dependency.

        Args:
            spec: Dependency to install
            force: Re-download even if the final file exists

        Returns:
            InstallResult with ALREADY_PRESENT or INSTALLED status

        Raises:
            DevbinsError: Any failure, carrying the dependency name and URL
        """
        if not force:
            existing = self.check_existing(spec)
            if existing is not None:
                return existing

        self.output_dir.mkdir(parents=True, exist_ok=True)
        url = spec.url
        try:
            url, inner_path = self.resolve_source(spec)
            return self._install_from(spec, url, inner_path)
        except DevbinsError as e:
            e.add_context(dependency=spec.name, url=url)
            raise
        except OSError as e:
            raise InstallError(f"Failed to install {spec.name}: {e}", url=url).add_context(
                dependency=spec.name
            ) from e

    def _install_from(
        self, spec: DependencySpec, url: str, inner_path: Optional[str]
    ) -> InstallResult:
        download = self.download_path(spec)
        scratch = self.scratch_dir(spec)
        staged = self.staged_path(spec)
        final = self.final_path(spec)

        # Leftovers from an interrupted run
        self._cleanup(download, scratch, staged)

        logger.info(f"Downloading {spec.name}...")
        try:
            self.downloader.fetch_with_retry(url, download)

            if spec.is_archived:
                logger.info(f"Extracting {spec.name}...")
                get_extractor(spec.extract, windows=self.windows).extract(download, scratch)
                if not inner_path:
                    raise MissingBinaryError(f"No inner path known for {spec.name}")
                source = self.locate(spec, scratch, inner_path)
            else:
                source = download

            shutil.copyfile(source, staged)
            set_executable(staged, windows=self.windows)

            check = self.validate(spec, staged)
            if not check.ok:
                safe_unlink(staged)
                raise ValidationError(
                    f"Downloaded {spec.output} failed version check: {check.message}",
                    url=url,
                )

            os.replace(staged, final)
            logger.info(f"Downloaded {spec.output} successfully ({check.message})")
            return InstallResult(
                name=spec.name,
                status=InstallStatus.INSTALLED,
                path=final,
                url=url,
                message=check.message,
            )
        finally:
            self._cleanup(download, scratch, staged)

    def _cleanup(self, download: Path, scratch: Path, staged: Path) -> None:
        for path in (download, staged):
            try:
                safe_unlink(path)
            except OSError as e:
                logger.warning(f"Failed to remove {path}: {e}")
        try:
            safe_rmtree(scratch, require_prefix=self.output_dir)
        except (FilesystemError, ValueError) as e:
            logger.warning(f"Failed to cleanup {scratch}: {e}")
