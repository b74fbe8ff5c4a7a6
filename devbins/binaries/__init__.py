"""
Provisioning of external binaries (yt-dlp, deno, ffmpeg).

Profiles describe what each platform needs; the installer and orchestrator
turn a profile into binaries on disk.
"""

from .profiles import (
    DependencySpec,
    ExtractMethod,
    PlatformProfile,
    ReleaseFallback,
    ValidationSpec,
    PROFILES,
    get_profile,
    supported_platforms,
)
from .resolver import ReleaseAssetResolver, ResolvedAsset, derive_inner_path
from .extractor import Extractor, ZipExtractor, TarXzExtractor, get_extractor, extract
from .installer import (
    BinaryInstaller,
    CheckResult,
    InstallResult,
    InstallStatus,
    validate_binary,
)
from .orchestrator import SetupOrchestrator, SetupReport, run_setup

__all__ = [
    "DependencySpec",
    "ExtractMethod",
    "PlatformProfile",
    "ReleaseFallback",
    "ValidationSpec",
    "PROFILES",
    "get_profile",
    "supported_platforms",
    "ReleaseAssetResolver",
    "ResolvedAsset",
    "derive_inner_path",
    "Extractor",
    "ZipExtractor",
    "TarXzExtractor",
    "get_extractor",
    "extract",
    "BinaryInstaller",
    "CheckResult",
    "InstallResult",
    "InstallStatus",
    "validate_binary",
    "SetupOrchestrator",
    "SetupReport",
    "run_setup",
]
