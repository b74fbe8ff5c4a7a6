"""
Check command implementation.

Validates the installed binaries of the current platform. Never touches
the network and never modifies files.
"""

import logging

from devbins.binaries.orchestrator import SetupOrchestrator
from devbins.cli.utils import load_settings, print_report
from devbins.core.exceptions import UnsupportedPlatformError

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the check command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 if every binary is present and valid)
    """
    settings = load_settings(args)

    try:
        orchestrator = SetupOrchestrator.from_settings(settings, locking=False)
    except UnsupportedPlatformError as e:
        logger.error(str(e))
        return 1

    report = orchestrator.check()
    print_report(report)
    return 0 if report.success else 1
