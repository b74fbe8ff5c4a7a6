"""
Configuration for devbins setup runs.
"""

from .settings import (
    SetupSettings,
    load_yaml_config,
    settings_from_config,
    settings_from_env,
    DEFAULT_CONFIG_FILE,
)

__all__ = [
    "SetupSettings",
    "load_yaml_config",
    "settings_from_config",
    "settings_from_env",
    "DEFAULT_CONFIG_FILE",
]
