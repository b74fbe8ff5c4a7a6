"""
Unit tests for archive extractors.

Command lines are checked with subprocess mocked; the round-trip tests use
the real system tools and are skipped where those are missing.
"""

import io
import shutil
import subprocess
import tarfile
import zipfile
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from devbins.binaries.extractor import (
    TarXzExtractor,
    ZipExtractor,
    extract,
    get_extractor,
)
from devbins.binaries.profiles import ExtractMethod
from devbins.core.exceptions import ExtractionError


@pytest.fixture
def archive(tmp_path):
    path = tmp_path / "tool.zip"
    path.write_bytes(b"PK")
    return path


class TestCommands:
    """Test extraction command lines."""

    def test_zip_posix(self, tmp_path):
        cmd = ZipExtractor(windows=False).command(tmp_path / "a.zip", tmp_path / "out")

        assert cmd == ["unzip", "-q", "-o", str(tmp_path / "a.zip"), "-d", str(tmp_path / "out")]

    def test_zip_windows(self):
        cmd = ZipExtractor(windows=True).command(
            Path("C:/Users/O'Brien/a.zip"), Path("C:/out")
        )

        assert cmd[0] == "powershell"
        assert "-NoProfile" in cmd
        assert cmd[-1].startswith("Expand-Archive -LiteralPath ")
        assert "O''Brien" in cmd[-1]
        assert cmd[-1].endswith("-Force")

    def test_tarxz(self, tmp_path):
        cmd = TarXzExtractor(windows=False).command(tmp_path / "a.tar.xz", tmp_path / "out")

        assert cmd == ["tar", "-xf", str(tmp_path / "a.tar.xz"), "-C", str(tmp_path / "out")]


class TestGetExtractor:
    def test_known_methods(self):
        assert isinstance(get_extractor(ExtractMethod.ZIP), ZipExtractor)
        assert isinstance(get_extractor(ExtractMethod.TARXZ), TarXzExtractor)

    def test_none_has_no_extractor(self):
        with pytest.raises(ExtractionError, match="No extractor"):
            get_extractor(ExtractMethod.NONE)


class TestExtract:
    """Test Extractor.extract() error handling."""

    @patch("subprocess.run")
    def test_success(self, mock_run, archive, tmp_path):
        mock_run.return_value = Mock(returncode=0, stdout="", stderr="")
        destination = tmp_path / "scratch"

        ZipExtractor(windows=False).extract(archive, destination)

        assert destination.is_dir()
        cmd = mock_run.call_args.args[0]
        assert cmd[0] == "unzip"
        assert mock_run.call_args.kwargs["capture_output"] is True

    @patch("subprocess.run")
    def test_nonzero_exit(self, mock_run, archive, tmp_path):
        """Test a failing tool raises ExtractionError with its output."""
        mock_run.return_value = Mock(
            returncode=9, stdout="", stderr="End-of-central-directory signature not found"
        )

        with pytest.raises(ExtractionError) as exc_info:
            ZipExtractor(windows=False).extract(archive, tmp_path / "scratch")

        assert "exit code 9" in str(exc_info.value)
        assert "central-directory" in exc_info.value.output

    @patch("subprocess.run", side_effect=FileNotFoundError("unzip"))
    def test_missing_tool(self, mock_run, archive, tmp_path):
        with pytest.raises(ExtractionError, match="Extraction tool not available: unzip"):
            ZipExtractor(windows=False).extract(archive, tmp_path / "scratch")

    @patch("subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="tar", timeout=600))
    def test_timeout(self, mock_run, archive, tmp_path):
        with pytest.raises(ExtractionError, match="timed out"):
            TarXzExtractor(windows=False).extract(archive, tmp_path / "scratch")

    @patch("subprocess.run")
    def test_missing_archive(self, mock_run, tmp_path):
        with pytest.raises(ExtractionError, match="Archive not found"):
            extract(tmp_path / "missing.zip", ExtractMethod.ZIP, tmp_path / "scratch")

        mock_run.assert_not_called()


class TestRoundTrip:
    """Extract real archives with the system tools."""

    @pytest.mark.skipif(shutil.which("tar") is None, reason="tar not available")
    def test_tarxz(self, tmp_path):
        archive_path = tmp_path / "proj-v1.tar.xz"
        payload = b"#!/bin/sh\necho tool 1.0\n"
        with tarfile.open(archive_path, "w:xz") as tar:
            info = tarfile.TarInfo("proj-v1/bin/tool")
            info.size = len(payload)
            info.mode = 0o755
            tar.addfile(info, io.BytesIO(payload))

        extract(archive_path, ExtractMethod.TARXZ, tmp_path / "scratch", windows=False)

        assert (tmp_path / "scratch" / "proj-v1" / "bin" / "tool").read_bytes() == payload

    @pytest.mark.skipif(shutil.which("unzip") is None, reason="unzip not available")
    def test_zip(self, tmp_path):
        archive_path = tmp_path / "deno.zip"
        with zipfile.ZipFile(archive_path, "w") as zf:
            zf.writestr("deno", "binary")

        extract(archive_path, ExtractMethod.ZIP, tmp_path / "scratch", windows=False)

        assert (tmp_path / "scratch" / "deno").read_text() == "binary"

    @pytest.mark.skipif(shutil.which("unzip") is None, reason="unzip not available")
    def test_corrupt_zip(self, tmp_path):
        archive_path = tmp_path / "broken.zip"
        archive_path.write_bytes(b"not a zip file")

        with pytest.raises(ExtractionError):
            extract(archive_path, ExtractMethod.ZIP, tmp_path / "scratch", windows=False)
