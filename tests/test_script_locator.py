"""Tests for finding the hammer script up the directory tree."""

import os

import pytest

from agentic_hammer.script_locator import find_script


class TestFindScript:
    """Upward search from a starting directory."""

    def test_found_in_ancestor(self, tmp_path):
        nested = tmp_path / "a" / "b" / "c"
        nested.mkdir(parents=True)
        script = tmp_path / "a" / "hammer"
        script.write_text("#!/bin/sh\n")

        assert find_script(nested, "hammer") == script

    def test_nearest_script_wins(self, tmp_path):
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        (tmp_path / "a" / "hammer").write_text("")
        closer = nested / "hammer"
        closer.write_text("")

        assert find_script(nested, "hammer") == closer

    def test_disjoint_tree_not_found(self, tmp_path):
        (tmp_path / "a").mkdir()
        (tmp_path / "a" / "hammer-test-script").write_text("")
        other = tmp_path / "x" / "y"
        other.mkdir(parents=True)

        assert find_script(other, "hammer-test-script") is None

    def test_directories_do_not_match(self, tmp_path):
        nested = tmp_path / "a"
        (nested / "hammer-test-script").mkdir(parents=True)

        assert find_script(nested, "hammer-test-script") is None

    def test_relative_start_returns_absolute_path(self, tmp_path, monkeypatch):
        (tmp_path / "sub").mkdir()
        (tmp_path / "hammer").write_text("")
        monkeypatch.chdir(tmp_path)

        result = find_script("sub", "hammer")

        assert result is not None
        assert result.is_absolute()
        assert result.name == "hammer"

    @pytest.mark.skipif(
        not hasattr(os, "geteuid") or os.geteuid() == 0,
        reason="root can read files regardless of mode",
    )
    def test_unreadable_script_is_skipped(self, tmp_path):
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        readable = tmp_path / "hammer"
        readable.write_text("#!/bin/sh\n")
        unreadable = nested / "hammer"
        unreadable.write_text("#!/bin/sh\n")
        unreadable.chmod(0o000)

        try:
            assert find_script(nested, "hammer") == readable
        finally:
            unreadable.chmod(0o644)
