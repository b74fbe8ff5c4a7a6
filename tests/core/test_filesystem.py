"""
Unit tests for filesystem utilities.
"""

import os

import pytest

from devbins.core.filesystem import (
    FilesystemError,
    is_executable,
    is_relative_to,
    safe_rmtree,
    safe_unlink,
    set_executable,
)


class TestIsRelativeTo:
    def test_child(self, tmp_path):
        assert is_relative_to(tmp_path / "a" / "b", tmp_path)

    def test_sibling(self, tmp_path):
        assert not is_relative_to(tmp_path.parent / "other", tmp_path)


class TestSafeUnlink:
    """Test safe_unlink()."""

    def test_removes_file(self, tmp_path):
        path = tmp_path / "file"
        path.write_text("x")

        assert safe_unlink(path) is True
        assert not path.exists()

    def test_missing_file(self, tmp_path):
        assert safe_unlink(tmp_path / "missing") is False


class TestSafeRmtree:
    """Test safe_rmtree()."""

    def test_removes_tree(self, tmp_path):
        target = tmp_path / "scratch"
        (target / "nested").mkdir(parents=True)
        (target / "nested" / "file.txt").write_text("content")

        safe_rmtree(target, require_prefix=tmp_path)

        assert not target.exists()

    def test_nonexistent_is_noop(self, tmp_path):
        safe_rmtree(tmp_path / "missing")

    def test_refuses_outside_prefix(self, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        prefix = tmp_path / "resources"
        prefix.mkdir()

        with pytest.raises(ValueError, match="not under required prefix"):
            safe_rmtree(outside, require_prefix=prefix)

        assert outside.exists()

    def test_rejects_file(self, tmp_path):
        path = tmp_path / "file"
        path.write_text("x")

        with pytest.raises(FilesystemError):
            safe_rmtree(path)


class TestSetExecutable:
    """Test set_executable()."""

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_sets_mode(self, tmp_path):
        path = tmp_path / "tool"
        path.write_text("#!/bin/sh\n")
        path.chmod(0o644)

        set_executable(path, windows=False)

        assert path.stat().st_mode & 0o777 == 0o755
        assert is_executable(path)

    def test_windows_is_noop(self, tmp_path):
        path = tmp_path / "tool.exe"
        path.write_text("")
        mode = path.stat().st_mode

        set_executable(path, windows=True)

        assert path.stat().st_mode == mode
