"""
Setup orchestration.

Sequences installation of every dependency in the active platform profile,
one at a time, and aggregates the outcomes into a SetupReport. A failing
dependency does not stop the others; the report tells the caller whether
the environment as a whole is usable.

Usage:
    from devbins.binaries.orchestrator import run_setup

    report = run_setup()
    if not report.success:
        raise SystemExit(1)
"""

import logging
from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

import requests

from devbins.binaries.installer import (
    BinaryInstaller,
    InstallResult,
    InstallStatus,
)
from devbins.binaries.profiles import (
    DEPENDENCY_ORDER,
    DependencySpec,
    PlatformProfile,
    get_profile,
)
from devbins.binaries.resolver import ReleaseAssetResolver
from devbins.config.settings import SetupSettings
from devbins.core.download import Fetcher, RetryController
from devbins.core.exceptions import DevbinsError, InstallError, ValidationError
from devbins.core.locking import LockManager
from devbins.core.platform import PlatformInfo, detect_platform

logger = logging.getLogger(__name__)


@dataclass
class SetupReport:
    """Aggregate result of one setup run."""

    platform: str
    results: List[InstallResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(result.ok for result in self.results)

    @property
    def failures(self) -> List[InstallResult]:
        return [result for result in self.results if not result.ok]

    def get(self, name: str) -> Optional[InstallResult]:
        for result in self.results:
            if result.name == name:
                return result
        return None

    def summary(self) -> str:
        lines = [f"Setup report for {self.platform}:"]
        lines.extend(f"  {result}" for result in self.results)
        if self.success:
            lines.append("All dependencies are installed.")
        else:
            names = ", ".join(result.name for result in self.failures)
            lines.append(f"Setup failed for: {names}")
        return "\n".join(lines)


class SetupOrchestrator:
    """Install all dependencies of one platform profile, sequentially."""

    def __init__(
        self,
        profile: PlatformProfile,
        installer: BinaryInstaller,
        lock_manager: Optional[LockManager] = None,
        lock_timeout: float = 600.0,
    ):
        self.profile = profile
        self.installer = installer
        self.lock_manager = lock_manager
        self.lock_timeout = lock_timeout

    @classmethod
    def from_settings(
        cls,
        settings: SetupSettings,
        platform_info: Optional[PlatformInfo] = None,
        session: Optional[requests.Session] = None,
        locking: bool = True,
    ) -> "SetupOrchestrator":
        """
        Wire up fetcher, resolver and installer from settings.

        With `locking` off no lock manager is built and the lock directory
        is left untouched.

        Raises:
            UnsupportedPlatformError: If the platform has no profile
        """
        platform_info = platform_info or detect_platform()
        profile = get_profile(platform_info)
        session = session or requests.Session()

        fetcher = Fetcher(
            session=session,
            timeout=settings.download_timeout,
            token=settings.github_token,
            max_redirects=settings.max_redirects,
        )
        downloader = RetryController(
            fetcher,
            max_attempts=settings.max_attempts,
            base_delay=settings.retry_delay,
        )
        resolver = ReleaseAssetResolver(
            session=session,
            token=settings.github_token,
            api_base=settings.api_base,
        )
        installer = BinaryInstaller(
            settings.output_dir,
            downloader,
            resolver=resolver,
            windows=profile.is_windows,
            validation_timeout=settings.validation_timeout,
        )
        return cls(
            profile,
            installer,
            lock_manager=LockManager(settings.lock_dir) if locking else None,
            lock_timeout=settings.lock_timeout,
        )

    def ordered_dependencies(
        self, only: Optional[Iterable[str]] = None
    ) -> Tuple[DependencySpec, ...]:
        """
        Dependencies in installation order, optionally filtered by name.

        Raises:
            ValueError: If `only` names a dependency the profile lacks
        """
        specs = sorted(
            self.profile.dependencies,
            key=lambda spec: (
                DEPENDENCY_ORDER.index(spec.name)
                if spec.name in DEPENDENCY_ORDER
                else len(DEPENDENCY_ORDER)
            ),
        )
        if only is None:
            return tuple(specs)

        wanted = set(only)
        unknown = wanted - set(self.profile.names())
        if unknown:
            raise ValueError(
                f"Unknown dependencies for {self.profile.key}: {', '.join(sorted(unknown))}"
            )
        return tuple(spec for spec in specs if spec.name in wanted)

    def _lock(self):
        if self.lock_manager is None:
            return nullcontext()
        return self.lock_manager.setup_lock(
            self.installer.output_dir, timeout=self.lock_timeout
        )

    def run(
        self, force: bool = False, only: Optional[Iterable[str]] = None
    ) -> SetupReport:
        """
        Install every dependency.

        Args:
            force: Re-install even when binaries are present
            only: Restrict the run to these dependency names

        Returns:
            SetupReport with one entry per dependency
        """
        specs = self.ordered_dependencies(only)
        report = SetupReport(platform=self.profile.key)
        logger.info(f"Setting up binaries for {self.profile.key}...")

        self.installer.output_dir.mkdir(parents=True, exist_ok=True)
        with self._lock():
            for spec in specs:
                report.results.append(self._install_one(spec, force))

        if report.success:
            logger.info("Environment setup completed!")
        else:
            for failure in report.failures:
                logger.error(f"Setup failed for {failure.name}: {failure.message}")
        return report

    def _install_one(self, spec: DependencySpec, force: bool) -> InstallResult:
        try:
            return self.installer.install(spec, force=force)
        except DevbinsError as e:
            e.add_context(dependency=spec.name)
            return InstallResult.failure(spec.name, e)

    def check(self) -> SetupReport:
        """
        Validate installed binaries without any network access.

        Missing or failing binaries are reported as failures; nothing is
        downloaded or deleted.
        """
        report = SetupReport(platform=self.profile.key)
        for spec in self.ordered_dependencies():
            final = self.installer.final_path(spec)
            if not final.exists():
                error = InstallError(f"{spec.output} is not installed")
                report.results.append(InstallResult.failure(spec.name, error))
                continue

            check = self.installer.validate(spec, final)
            if check.ok:
                report.results.append(
                    InstallResult(
                        name=spec.name,
                        status=InstallStatus.ALREADY_PRESENT,
                        path=final,
                        message=check.message,
                    )
                )
            else:
                error = ValidationError(
                    f"{spec.output} failed version check: {check.message}"
                )
                report.results.append(InstallResult.failure(spec.name, error))
        return report


def run_setup(
    settings: Optional[SetupSettings] = None,
    platform_info: Optional[PlatformInfo] = None,
    force: bool = False,
    only: Optional[Iterable[str]] = None,
) -> SetupReport:
    """
    Ensure all platform dependencies are installed.

    Raises:
        UnsupportedPlatformError: If the platform has no profile
    """
    settings = settings or SetupSettings.load()
    orchestrator = SetupOrchestrator.from_settings(settings, platform_info)
    return orchestrator.run(force=force, only=only)
