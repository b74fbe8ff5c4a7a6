"""
Platform profile table.

Static, read-only mapping from (operating system, architecture) to the
dependencies that must be provisioned there. Every entry is a frozen
dataclass and the table itself is a MappingProxyType, so the installer
can never mutate configuration.
"""

import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from devbins.core.exceptions import UnsupportedPlatformError
from devbins.core.platform import PlatformInfo

YTDLP_BASE_URL = "https://github.com/yt-dlp/yt-dlp/releases/latest/download"
DENO_BASE_URL = "https://github.com/denoland/deno/releases/latest/download"
FFMPEG_BUILDS_URL = "https://github.com/yt-dlp/FFmpeg-Builds/releases/latest/download"
MPV_MAC_URL = "https://github.com/eko5624/mpv-mac/releases/download/2025-10-25"

FFMPEG_BUILD_REPOS = ("yt-dlp/FFmpeg-Builds", "BtbN/FFmpeg-Builds")
MPV_MAC_REPOS = ("eko5624/mpv-mac",)

# Installation order is fixed: extraction tool, scripting runtime, multimedia tool
DEPENDENCY_ORDER = ("yt-dlp", "deno", "ffmpeg")


class ExtractMethod(Enum):
    """How a downloaded asset is unpacked."""

    NONE = "none"
    ZIP = "zip"
    TARXZ = "tarxz"


@dataclass(frozen=True)
class ValidationSpec:
    """Invocation used to prove a binary runs (success is exit code zero)."""

    args: Tuple[str, ...]
    timeout: float = 8.0


@dataclass(frozen=True)
class ReleaseFallback:
    """
    Where to look up the latest release asset.

    Attributes:
        repositories: Candidate "owner/repo" identifiers, tried in order
        asset_pattern: Regular expression matched against asset file names
        inner_path_template: Template for the inner path, with `{stem}` being
            the asset name without its archive extension
        inner_path: Static inner path; takes precedence over the template
    """

    repositories: Tuple[str, ...]
    asset_pattern: re.Pattern
    inner_path_template: Optional[str] = None
    inner_path: Optional[str] = None


@dataclass(frozen=True)
class DependencySpec:
    """
    Immutable description of one external binary.

    Attributes:
        name: Logical name ('yt-dlp', 'deno', 'ffmpeg')
        output: Final filename inside the output directory
        url: Static download URL, used directly or when resolution fails
        extract: Extraction method for the downloaded asset
        validation: Check invocation for the installed binary
        inner_path: Path of the binary inside the archive for the static URL
        release: Optional latest-release lookup tried before the static URL
    """

    name: str
    output: str
    url: str
    extract: ExtractMethod
    validation: ValidationSpec
    inner_path: Optional[str] = None
    release: Optional[ReleaseFallback] = None

    @property
    def is_archived(self) -> bool:
        return self.extract is not ExtractMethod.NONE

    @property
    def archive_suffix(self) -> str:
        return {
            ExtractMethod.ZIP: ".zip",
            ExtractMethod.TARXZ: ".tar.xz",
        }.get(self.extract, "")

    def __post_init__(self):
        if self.is_archived and not (
            self.inner_path or (self.release and self.release.inner_path)
        ):
            raise ValueError(f"Archived dependency {self.name} needs an inner path")


@dataclass(frozen=True)
class PlatformProfile:
    """Dependencies applicable to one (OS, architecture) pair."""

    os: str
    arch: str
    dependencies: Tuple[DependencySpec, ...]

    @property
    def key(self) -> str:
        return f"{self.os}-{self.arch}"

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    def get(self, name: str) -> Optional[DependencySpec]:
        for spec in self.dependencies:
            if spec.name == name:
                return spec
        return None

    def names(self) -> Tuple[str, ...]:
        return tuple(spec.name for spec in self.dependencies)


YTDLP_CHECK = ValidationSpec(args=("--version",))
DENO_CHECK = ValidationSpec(args=("--version",))
FFMPEG_CHECK = ValidationSpec(args=("-version",))


def _ytdlp(asset: str, output: str) -> DependencySpec:
    return DependencySpec(
        name="yt-dlp",
        output=output,
        url=f"{YTDLP_BASE_URL}/{asset}",
        extract=ExtractMethod.NONE,
        validation=YTDLP_CHECK,
    )


def _deno(triple: str, windows: bool = False) -> DependencySpec:
    binary = "deno.exe" if windows else "deno"
    return DependencySpec(
        name="deno",
        output=binary,
        url=f"{DENO_BASE_URL}/deno-{triple}.zip",
        extract=ExtractMethod.ZIP,
        inner_path=binary,
        validation=DENO_CHECK,
    )


def _ffmpeg_build(build: str, extract: ExtractMethod, output: str) -> DependencySpec:
    """ffmpeg from the FFmpeg-Builds nightly releases (Windows and Linux)."""
    suffix = ".zip" if extract is ExtractMethod.ZIP else ".tar.xz"
    binary = "ffmpeg.exe" if output.endswith(".exe") else "ffmpeg"
    asset = f"ffmpeg-master-latest-{build}-gpl{suffix}"
    return DependencySpec(
        name="ffmpeg",
        output=output,
        url=f"{FFMPEG_BUILDS_URL}/{asset}",
        extract=extract,
        inner_path=f"ffmpeg-master-latest-{build}-gpl/bin/{binary}",
        validation=FFMPEG_CHECK,
        release=ReleaseFallback(
            repositories=FFMPEG_BUILD_REPOS,
            asset_pattern=re.compile(re.escape(asset) + "$", re.IGNORECASE),
            inner_path_template="{stem}/bin/" + binary,
        ),
    )


def _ffmpeg_mac(arch_tag: str) -> DependencySpec:
    return DependencySpec(
        name="ffmpeg",
        output="ffmpeg_macos",
        url=f"{MPV_MAC_URL}/ffmpeg-{arch_tag}-defd5f3f64.zip",
        extract=ExtractMethod.ZIP,
        inner_path="ffmpeg/ffmpeg",
        validation=FFMPEG_CHECK,
        release=ReleaseFallback(
            repositories=MPV_MAC_REPOS,
            asset_pattern=re.compile(rf"ffmpeg-{arch_tag}.*\.zip$", re.IGNORECASE),
            inner_path="ffmpeg/ffmpeg",
        ),
    )


def _profile(os_name: str, arch: str, *deps: DependencySpec) -> PlatformProfile:
    return PlatformProfile(os=os_name, arch=arch, dependencies=tuple(deps))


PROFILES: Mapping[Tuple[str, str], PlatformProfile] = MappingProxyType(
    {
        ("windows", "x64"): _profile(
            "windows",
            "x64",
            _ytdlp("yt-dlp.exe", "yt-dlp.exe"),
            _deno("x86_64-pc-windows-msvc", windows=True),
            _ffmpeg_build("win64", ExtractMethod.ZIP, "ffmpeg.exe"),
        ),
        ("windows", "arm64"): _profile(
            "windows",
            "arm64",
            _ytdlp("yt-dlp_arm64.exe", "yt-dlp.exe"),
            _deno("aarch64-pc-windows-msvc", windows=True),
            _ffmpeg_build("winarm64", ExtractMethod.ZIP, "ffmpeg.exe"),
        ),
        ("macos", "x64"): _profile(
            "macos",
            "x64",
            _ytdlp("yt-dlp_macos", "yt-dlp_macos"),
            _deno("x86_64-apple-darwin"),
            _ffmpeg_mac("x86_64"),
        ),
        ("macos", "arm64"): _profile(
            "macos",
            "arm64",
            _ytdlp("yt-dlp_macos", "yt-dlp_macos"),
            _deno("aarch64-apple-darwin"),
            _ffmpeg_mac("arm64"),
        ),
        ("linux", "x64"): _profile(
            "linux",
            "x64",
            _ytdlp("yt-dlp", "yt-dlp_linux"),
            _deno("x86_64-unknown-linux-gnu"),
            _ffmpeg_build("linux64", ExtractMethod.TARXZ, "ffmpeg_linux"),
        ),
        ("linux", "arm64"): _profile(
            "linux",
            "arm64",
            _ytdlp("yt-dlp_linux_aarch64", "yt-dlp_linux"),
            _deno("aarch64-unknown-linux-gnu"),
            _ffmpeg_build("linuxarm64", ExtractMethod.TARXZ, "ffmpeg_linux"),
        ),
    }
)


def get_profile(platform_info: PlatformInfo) -> PlatformProfile:
    """
    Look up the profile for a platform.

    Raises:
        UnsupportedPlatformError: If the (OS, architecture) pair has no profile
    """
    profile = PROFILES.get((platform_info.os, platform_info.arch))
    if profile is None:
        raise UnsupportedPlatformError(platform_info.os, platform_info.arch)
    return profile


def supported_platforms() -> Tuple[str, ...]:
    """Canonical strings for every supported platform."""
    return tuple(f"{os_name}-{arch}" for os_name, arch in PROFILES)
