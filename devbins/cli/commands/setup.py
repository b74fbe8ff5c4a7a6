"""
Setup command implementation.

Installs every binary of the current platform and exits non-zero if the
platform is unsupported or any dependency could not be installed.
"""

import logging

from devbins.binaries.orchestrator import SetupOrchestrator
from devbins.cli.utils import load_settings, print_report
from devbins.core.exceptions import UnsupportedPlatformError

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the setup command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    settings = load_settings(args)

    try:
        orchestrator = SetupOrchestrator.from_settings(settings)
    except UnsupportedPlatformError as e:
        logger.error(str(e))
        return 1

    report = orchestrator.run(force=args.force, only=args.only)
    print_report(report)
    return 0 if report.success else 1
