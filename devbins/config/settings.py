"""
Runtime settings for a setup run.

Settings are assembled from, in increasing precedence:
built-in defaults, an optional YAML file, environment variables and
explicit overrides (CLI flags).

Example devbins.yaml:

    output_dir: resources
    download:
      timeout: 300
      max_attempts: 3
      retry_delay: 2
      max_redirects: 5
    validation:
      timeout: 8
    github:
      api_base: https://api.github.com
    lock:
      dir: ~/.devbins/lock
      timeout: 600
"""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from devbins.core.download import (
    DEFAULT_API_BASE,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_REDIRECTS,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "devbins.yaml"
TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GH_TOKEN", "GITHUB_API_TOKEN")
TIMEOUT_ENV_VAR = "DEVBINS_DOWNLOAD_TIMEOUT_MS"


@dataclass(frozen=True)
class SetupSettings:
    """
    Settings for one setup run.

    Attributes:
        output_dir: Directory receiving the binaries
        download_timeout: Idle timeout per download, in seconds
        max_attempts: Download attempts per URL
        retry_delay: Base delay for linear backoff, in seconds
        max_redirects: Redirect cap per download
        validation_timeout: Timeout for each check invocation, in seconds
        api_base: Release API base URL
        github_token: Optional token for the release API and GitHub downloads
        lock_dir: Directory for lock files (global cache if None)
        lock_timeout: Seconds to wait for a concurrent run to finish
    """

    output_dir: Path = Path("resources")
    download_timeout: float = DEFAULT_TIMEOUT
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_delay: float = DEFAULT_RETRY_DELAY
    max_redirects: int = DEFAULT_MAX_REDIRECTS
    validation_timeout: float = 8.0
    api_base: str = DEFAULT_API_BASE
    github_token: Optional[str] = field(default=None, repr=False)
    lock_dir: Optional[Path] = None
    lock_timeout: float = 600.0

    def with_overrides(self, **overrides: Any) -> "SetupSettings":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @classmethod
    def load(
        cls,
        config_file: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any,
    ) -> "SetupSettings":
        """
        Build settings from file, environment and overrides.

        Args:
            config_file: YAML file (optional; missing file is ignored)
            environ: Environment mapping (defaults to os.environ)
            **overrides: Explicit values; None means "not given"

        Raises:
            ValueError: If the YAML file is invalid
        """
        environ = os.environ if environ is None else environ
        settings = cls()

        if config_file is not None:
            settings = settings.with_overrides(
                **settings_from_config(load_yaml_config(Path(config_file)))
            )

        settings = settings.with_overrides(**settings_from_env(environ))
        return settings.with_overrides(**overrides)


def load_yaml_config(config_file: Path, required: bool = False) -> Dict[str, Any]:
    """
    Load and parse a YAML configuration file.

    Args:
        config_file: Path to YAML configuration file
        required: If True, raise error if file doesn't exist

    Returns:
        Configuration dictionary (empty dict if file doesn't exist and not required)

    Raises:
        FileNotFoundError: If required=True and file doesn't exist
        ValueError: If YAML parsing fails or the document is not a mapping
    """
    if not config_file.exists():
        if required:
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
        logger.debug(f"Config file not found (optional): {config_file}")
        return {}

    logger.debug(f"Loading configuration from {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML: {e}")
        raise ValueError(f"Invalid YAML in {config_file}: {e}")

    config = config or {}
    if not isinstance(config, dict):
        raise ValueError(f"Invalid configuration in {config_file}: expected a mapping")
    return config


def settings_from_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Map the YAML structure to SetupSettings field values."""
    download = config.get("download") or {}
    validation = config.get("validation") or {}
    github = config.get("github") or {}
    lock = config.get("lock") or {}

    values: Dict[str, Any] = {
        "output_dir": _path(config.get("output_dir")),
        "download_timeout": _number(download.get("timeout"), "download.timeout"),
        "max_attempts": _integer(download.get("max_attempts"), "download.max_attempts"),
        "retry_delay": _number(download.get("retry_delay"), "download.retry_delay"),
        "max_redirects": _integer(download.get("max_redirects"), "download.max_redirects"),
        "validation_timeout": _number(validation.get("timeout"), "validation.timeout"),
        "api_base": github.get("api_base"),
        "lock_dir": _path(lock.get("dir")),
        "lock_timeout": _number(lock.get("timeout"), "lock.timeout"),
    }
    return {k: v for k, v in values.items() if v is not None}


def settings_from_env(environ: Mapping[str, str]) -> Dict[str, Any]:
    """
    Read the token and download timeout from the environment.

    An invalid timeout value is ignored with a warning.
    """
    values: Dict[str, Any] = {}

    for name in TOKEN_ENV_VARS:
        token = environ.get(name)
        if token:
            values["github_token"] = token
            break

    raw_timeout = environ.get(TIMEOUT_ENV_VAR)
    if raw_timeout:
        try:
            timeout_ms = float(raw_timeout)
        except ValueError:
            timeout_ms = 0
        if timeout_ms > 0:
            values["download_timeout"] = timeout_ms / 1000
        else:
            logger.warning(f"Ignoring invalid {TIMEOUT_ENV_VAR}={raw_timeout!r}")

    return values


def _path(value: Any) -> Optional[Path]:
    if value is None:
        return None
    return Path(str(value)).expanduser()


def _number(value: Any, key: str) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Configuration value {key} must be a number, got {value!r}")
    if number <= 0:
        raise ValueError(f"Configuration value {key} must be positive, got {value!r}")
    return number


def _integer(value: Any, key: str) -> Optional[int]:
    number = _number(value, key)
    if number is None:
        return None
    if number != int(number):
        raise ValueError(f"Configuration value {key} must be an integer, got {value!r}")
    return int(number)
