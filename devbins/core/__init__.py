"""
Core functionality for devbins.

This package contains the foundational modules that the installer depends on.
"""

from .platform import (
    PlatformInfo,
    detect_platform,
    clear_platform_cache,
)

from .download import (
    Fetcher,
    RetryController,
    DownloadAttempt,
    DownloadProgress,
    AttemptOutcome,
    format_bytes,
)

from .locking import (
    LockManager,
    LockTimeout,
)

from .exceptions import (
    DevbinsError,
    UnsupportedPlatformError,
    DownloadError,
    NetworkError,
    DownloadTimeoutError,
    HttpStatusError,
    RedirectError,
    ResolverExhaustedError,
    InstallError,
    ExtractionError,
    MissingBinaryError,
    ValidationError,
)

__all__ = [
    "PlatformInfo",
    "detect_platform",
    "clear_platform_cache",
    "Fetcher",
    "RetryController",
    "DownloadAttempt",
    "DownloadProgress",
    "AttemptOutcome",
    "format_bytes",
    "LockManager",
    "LockTimeout",
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
