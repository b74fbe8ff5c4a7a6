"""
Profiles command implementation.

Prints the dependency table for the current platform, or for every
supported platform with --all.
"""

import logging

from devbins.binaries.profiles import PROFILES, PlatformProfile, get_profile
from devbins.core.exceptions import UnsupportedPlatformError
from devbins.core.platform import detect_platform

logger = logging.getLogger(__name__)


def format_profile(profile: PlatformProfile) -> str:
    lines = [f"{profile.key}:"]
    for spec in profile.dependencies:
        lines.append(f"  {spec.name} -> {spec.output} ({spec.extract.value})")
        lines.append(f"    url: {spec.url}")
        if spec.inner_path:
            lines.append(f"    inner path: {spec.inner_path}")
        if spec.release:
            lines.append(f"    releases: {', '.join(spec.release.repositories)}")
        lines.append(f"    check: {' '.join(spec.validation.args)}")
    return "\n".join(lines)


def run(args) -> int:
    """
    Run the profiles command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (1 if the current platform is unsupported)
    """
    if args.all:
        print("\n".join(format_profile(profile) for profile in PROFILES.values()))
        return 0

    try:
        profile = get_profile(detect_platform())
    except UnsupportedPlatformError as e:
        logger.error(str(e))
        return 1

    print(format_profile(profile))
    return 0
