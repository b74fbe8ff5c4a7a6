"""
Archive extraction through platform tools.

Each archive format is an Extractor subclass; adding a format means
adding a class and registering it in EXTRACTORS. Extraction shells out to
the system tools (`unzip`, PowerShell `Expand-Archive`, `tar`) and turns a
non-zero exit into ExtractionError with the captured output.

Callers must pass a fresh scratch directory: extracting over existing
content is not supported.
"""

import logging
import os
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Type

from devbins.binaries.profiles import ExtractMethod
from devbins.core.exceptions import ExtractionError

logger = logging.getLogger(__name__)

EXTRACT_TIMEOUT = 600


class Extractor(ABC):
    """Base class for archive extractors."""

    def __init__(self, windows: Optional[bool] = None):
        self.windows = (os.name == "nt") if windows is None else windows

    @abstractmethod
    def command(self, archive_path: Path, destination: Path) -> List[str]:
        """Build the extraction command line."""

    def extract(self, archive_path: Path, destination: Path) -> None:
        """
        Extract an archive into `destination`.

        Args:
            archive_path: Path to the archive file
            destination: Directory to extract to (created if absent)

        Raises:
            ExtractionError: If the archive is missing or the tool fails
        """
        archive_path = Path(archive_path)
        destination = Path(destination)

        if not archive_path.exists():
            raise ExtractionError(f"Archive not found: {archive_path}")

        destination.mkdir(parents=True, exist_ok=True)
        cmd = self.command(archive_path.resolve(), destination.resolve())
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=EXTRACT_TIMEOUT,
            )
        except FileNotFoundError as e:
            raise ExtractionError(f"Extraction tool not available: {cmd[0]}", str(e))
        except subprocess.TimeoutExpired as e:
            raise ExtractionError(
                f"Extraction of {archive_path.name} timed out after {EXTRACT_TIMEOUT}s"
            ) from e

        if result.returncode != 0:
            output = f"{result.stdout or ''}\n{result.stderr or ''}".strip()
            raise ExtractionError(
                f"Failed to extract {archive_path.name} (exit code {result.returncode})",
                output,
            )


class ZipExtractor(Extractor):
    """Zip archives: PowerShell on Windows, unzip elsewhere."""

    def command(self, archive_path: Path, destination: Path) -> List[str]:
        if self.windows:
            return [
                "powershell",
                "-NoProfile",
                "-NonInteractive",
                "-Command",
                "Expand-Archive -LiteralPath {} -DestinationPath {} -Force".format(
                    _ps_quote(str(archive_path)), _ps_quote(str(destination))
                ),
            ]
        return ["unzip", "-q", "-o", str(archive_path), "-d", str(destination)]


class TarXzExtractor(Extractor):
    """tar archives with xz compression (tar detects the compression)."""

    def command(self, archive_path: Path, destination: Path) -> List[str]:
        return ["tar", "-xf", str(archive_path), "-C", str(destination)]


EXTRACTORS: Dict[ExtractMethod, Type[Extractor]] = {
    ExtractMethod.ZIP: ZipExtractor,
    ExtractMethod.TARXZ: TarXzExtractor,
}


def get_extractor(method: ExtractMethod, windows: Optional[bool] = None) -> Extractor:
    """
    Get the extractor for a method.

    Raises:
        ExtractionError: If the method has no extractor (e.g. NONE)
    """
    extractor_cls = EXTRACTORS.get(method)
    if extractor_cls is None:
        raise ExtractionError(f"No extractor for method: {method.value}")
    return extractor_cls(windows=windows)


def extract(
    archive_path: Path,
    method: ExtractMethod,
    destination: Path,
    windows: Optional[bool] = None,
) -> None:
    """Extract `archive_path` into `destination` using `method`."""
    get_extractor(method, windows=windows).extract(archive_path, destination)


def _ps_quote(value: str) -> str:
    """Quote a string as a PowerShell single-quoted literal."""
    return "'" + value.replace("'", "''") + "'"
