"""
Shared utilities for CLI commands.
"""

import logging
from pathlib import Path

from devbins.config.settings import DEFAULT_CONFIG_FILE, SetupSettings

logger = logging.getLogger(__name__)


def load_settings(args) -> SetupSettings:
    """
    Build settings from the global CLI options.

    An explicit --config must exist; otherwise ./devbins.yaml is used when
    present.

    Raises:
        FileNotFoundError: If --config points to a missing file
        ValueError: If the configuration is invalid
    """
    config_file = getattr(args, "config", None)
    if config_file is not None:
        config_file = Path(config_file)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
    else:
        default = Path.cwd() / DEFAULT_CONFIG_FILE
        config_file = default if default.exists() else None

    settings = SetupSettings.load(
        config_file=config_file,
        output_dir=getattr(args, "output_dir", None),
    )
    logger.debug(f"Settings: {settings}")
    return settings


def print_report(report) -> None:
    """Print one line per dependency plus a verdict."""
    print(report.summary())
