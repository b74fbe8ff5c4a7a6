"""
Tests for CLI argument parser.
"""

import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from devbins.cli.parser import CLI


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_no_command_shows_help(self, capsys):
        """Test that running without command shows help."""
        cli = CLI()
        result = cli.run([])

        assert result == 1
        captured = capsys.readouterr()
        assert "usage:" in captured.out.lower() or "usage:" in captured.err.lower()

    def test_version_flag(self, capsys):
        """Test --version flag."""
        cli = CLI()

        with pytest.raises(SystemExit) as exc_info:
            cli.run(["--version"])

        assert exc_info.value.code == 0
        captured = capsys.readouterr()
        assert "devbins" in captured.out


class TestSetupCommand:
    """Test setup command parsing."""

    def test_setup_basic(self):
        args = CLI().parse_args(["setup"])

        assert args.command == "setup"
        assert args.force is False
        assert args.only is None

    def test_setup_all_options(self):
        args = CLI().parse_args(["setup", "--force", "--only", "ffmpeg", "deno"])

        assert args.force is True
        assert args.only == ["ffmpeg", "deno"]


class TestOtherCommands:
    def test_check(self):
        assert CLI().parse_args(["check"]).command == "check"

    def test_profiles(self):
        args = CLI().parse_args(["profiles", "--all"])

        assert args.command == "profiles"
        assert args.all is True


class TestGlobalOptions:
    """Test global options."""

    def test_verbose_flag(self):
        args = CLI().parse_args(["-v", "setup"])
        assert args.verbose is True

    def test_quiet_flag(self):
        args = CLI().parse_args(["-q", "setup"])
        assert args.quiet is True

    def test_config_option(self):
        args = CLI().parse_args(["--config", "/path/to/devbins.yaml", "setup"])
        assert args.config == Path("/path/to/devbins.yaml")

    def test_output_dir_option(self):
        args = CLI().parse_args(["--output-dir", "bin", "setup"])
        assert args.output_dir == Path("bin")


class TestLoggingConfiguration:
    """Test logging configuration."""

    @pytest.mark.parametrize(
        "flags,level",
        [([], logging.INFO), (["--verbose"], logging.DEBUG), (["--quiet"], logging.ERROR)],
    )
    def test_levels(self, flags, level):
        cli = CLI()
        args = cli.parse_args([*flags, "check"])
        cli._configure_logging(args)

        assert logging.getLogger().level == level


class TestCommandDispatch:
    """Test command dispatch system."""

    @pytest.mark.parametrize("command", ["setup", "check", "profiles"])
    def test_dispatch(self, command):
        with patch(f"devbins.cli.commands.{command}.run", return_value=0) as mock_run:
            result = CLI().run([command])

        assert result == 0
        assert mock_run.called
        assert mock_run.call_args.args[0].command == command

    @patch("devbins.cli.commands.setup.run", return_value=1)
    def test_exit_code_propagates(self, mock_run):
        assert CLI().run(["setup"]) == 1


class TestErrorHandling:
    """Test error handling."""

    def test_keyboard_interrupt(self):
        """Test handling of KeyboardInterrupt."""
        cli = CLI()

        with patch("devbins.cli.parser.CLI._dispatch_command") as mock_dispatch:
            mock_dispatch.side_effect = KeyboardInterrupt()

            result = cli.run(["setup"])
            assert result == 130  # SIGINT exit code

    def test_exception_handling(self, capsys):
        """Test generic exception handling."""
        cli = CLI()

        with patch("devbins.cli.parser.CLI._dispatch_command") as mock_dispatch:
            mock_dispatch.side_effect = RuntimeError("Test error")

            result = cli.run(["setup"])

        assert result == 1
        assert "Error: Test error" in capsys.readouterr().err

    def test_exception_with_verbose(self, capsys):
        """Test verbose mode prints the traceback."""
        cli = CLI()

        with patch("devbins.cli.parser.CLI._dispatch_command") as mock_dispatch:
            mock_dispatch.side_effect = RuntimeError("Test error")

            result = cli.run(["--verbose", "setup"])

        assert result == 1
        assert "Traceback" in capsys.readouterr().err
