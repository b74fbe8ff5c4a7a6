"""
Tests for the setup, check and profiles commands.
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from devbins.binaries.installer import InstallResult, InstallStatus
from devbins.binaries.orchestrator import SetupReport
from devbins.cli.parser import CLI
from devbins.cli.utils import load_settings
from devbins.core.exceptions import NetworkError, UnsupportedPlatformError
from devbins.core.platform import PlatformInfo


def report(*failed):
    results = []
    for name in ("yt-dlp", "deno", "ffmpeg"):
        if name in failed:
            results.append(InstallResult.failure(name, NetworkError("connection reset")))
        else:
            results.append(InstallResult(name=name, status=InstallStatus.INSTALLED))
    return SetupReport(platform="linux-x64", results=results)


@pytest.fixture(autouse=True)
def workdir(tmp_path, monkeypatch):
    """Run every command from an empty directory with no tokens set."""
    monkeypatch.chdir(tmp_path)
    for name in ("GITHUB_TOKEN", "GH_TOKEN", "GITHUB_API_TOKEN", "DEVBINS_DOWNLOAD_TIMEOUT_MS"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


class TestSetupCommand:
    """Test `devbins setup`."""

    @patch("devbins.cli.commands.setup.SetupOrchestrator")
    def test_success(self, mock_orchestrator, capsys, tmp_path):
        mock_orchestrator.from_settings.return_value.run.return_value = report()

        result = CLI().run(["--output-dir", str(tmp_path / "bin"), "setup", "--force"])

        assert result == 0
        settings = mock_orchestrator.from_settings.call_args.args[0]
        assert settings.output_dir == tmp_path / "bin"
        mock_orchestrator.from_settings.return_value.run.assert_called_once_with(
            force=True, only=None
        )
        assert "All dependencies are installed." in capsys.readouterr().out

    @patch("devbins.cli.commands.setup.SetupOrchestrator")
    def test_failure_exit_code(self, mock_orchestrator, capsys):
        mock_orchestrator.from_settings.return_value.run.return_value = report("ffmpeg")

        result = CLI().run(["setup", "--only", "ffmpeg"])

        assert result == 1
        mock_orchestrator.from_settings.return_value.run.assert_called_once_with(
            force=False, only=["ffmpeg"]
        )
        assert "Setup failed for: ffmpeg" in capsys.readouterr().out

    @patch("devbins.cli.commands.setup.SetupOrchestrator")
    def test_unsupported_platform(self, mock_orchestrator):
        mock_orchestrator.from_settings.side_effect = UnsupportedPlatformError("freebsd", "x64")

        assert CLI().run(["setup"]) == 1
        mock_orchestrator.from_settings.return_value.run.assert_not_called()


class TestCheckCommand:
    """Test `devbins check`."""

    @patch("devbins.cli.commands.check.SetupOrchestrator")
    def test_all_valid(self, mock_orchestrator):
        mock_orchestrator.from_settings.return_value.check.return_value = report()

        assert CLI().run(["check"]) == 0
        assert mock_orchestrator.from_settings.call_args.kwargs == {"locking": False}

    @patch("devbins.cli.commands.check.SetupOrchestrator")
    def test_missing_binary(self, mock_orchestrator):
        mock_orchestrator.from_settings.return_value.check.return_value = report("deno")

        assert CLI().run(["check"]) == 1


class TestProfilesCommand:
    """Test `devbins profiles`."""

    def test_all(self, capsys):
        assert CLI().run(["profiles", "--all"]) == 0

        out = capsys.readouterr().out
        for key in ("windows-x64", "macos-arm64", "linux-arm64"):
            assert f"{key}:" in out

    @patch(
        "devbins.cli.commands.profiles.detect_platform",
        return_value=PlatformInfo("linux", "x64"),
    )
    def test_current(self, mock_detect, capsys):
        assert CLI().run(["profiles"]) == 0

        out = capsys.readouterr().out
        assert out.startswith("linux-x64:")
        assert "ffmpeg -> ffmpeg_linux (tarxz)" in out
        assert "windows-x64" not in out

    @patch(
        "devbins.cli.commands.profiles.detect_platform",
        return_value=PlatformInfo("freebsd", "x64"),
    )
    def test_unsupported(self, mock_detect):
        assert CLI().run(["profiles"]) == 1


class TestLoadSettings:
    """Test configuration discovery for commands."""

    def test_defaults_without_config(self):
        args = CLI().parse_args(["setup"])

        assert load_settings(args).output_dir == Path("resources")

    def test_picks_up_local_config(self, workdir):
        (workdir / "devbins.yaml").write_text("output_dir: vendor/bin\n")
        args = CLI().parse_args(["setup"])

        assert load_settings(args).output_dir == Path("vendor/bin")

    def test_output_dir_flag_wins(self, workdir):
        (workdir / "devbins.yaml").write_text("output_dir: vendor/bin\n")
        args = CLI().parse_args(["--output-dir", "other", "setup"])

        assert load_settings(args).output_dir == Path("other")

    def test_explicit_config_must_exist(self, workdir):
        args = CLI().parse_args(["--config", str(workdir / "missing.yaml"), "setup"])

        with pytest.raises(FileNotFoundError):
            load_settings(args)

    def test_missing_config_exit_code(self, workdir):
        assert CLI().run(["--config", str(workdir / "missing.yaml"), "setup"]) == 1
