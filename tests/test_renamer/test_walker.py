"""Tests for the pruning directory walk."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from starterkit.config import RenameSettings
from starterkit.renamer.walker import ExclusionSet, walk_files

pytestmark = pytest.mark.unit


def _rel(root: Path, paths) -> list[str]:
    return [p.relative_to(root).as_posix() for p in paths]


class TestExclusionSet:
    def test_build_normalizes_paths(self):
        excl = ExclusionSet.build(relative_paths=["/docs/", "a\\b"])
        assert excl.relative_paths == frozenset({"docs", "a/b"})

    def test_from_settings(self):
        excl = ExclusionSet.from_settings(RenameSettings(excluded_paths=["packages/legacy"]))
        assert "node_modules" in excl.dir_names
        assert ".env.example" in excl.file_names
        assert excl.excludes_dir("legacy", "packages/legacy")

    def test_file_matches_by_name_or_path(self):
        excl = ExclusionSet.build(file_names=["yarn.lock"], relative_paths=["docs/notes.md"])
        assert excl.excludes_file("yarn.lock", "deep/yarn.lock")
        assert excl.excludes_file("notes.md", "docs/notes.md")
        assert not excl.excludes_file("notes.md", "other/notes.md")


class TestWalkFiles:
    def test_depth_first_name_order(self, tmp_path):
        for rel in ["b.txt", "a/z.txt", "a/b/c.txt", "c/d.txt", "a.txt"]:
            path = tmp_path / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("x")

        assert _rel(tmp_path, walk_files(tmp_path, ExclusionSet())) == [
            "a.txt",
            "b.txt",
            "a/z.txt",
            "a/b/c.txt",
            "c/d.txt",
        ]

    def test_excluded_dirs_pruned(self, starter_tree):
        excl = ExclusionSet.from_settings(RenameSettings())
        found = _rel(starter_tree, walk_files(starter_tree, excl))
        assert not any(p.startswith("node_modules/") for p in found)
        assert not any(p.startswith(".git/") for p in found)
        assert "packages/backend/src/index.ts" in found

    def test_excluded_files_skipped(self, starter_tree):
        excl = ExclusionSet.from_settings(RenameSettings())
        found = _rel(starter_tree, walk_files(starter_tree, excl))
        assert ".gitignore" not in found
        assert "pnpm-lock.yaml" not in found
        assert ".env.example" not in found

    def test_excluded_files_kept_when_requested(self, starter_tree):
        excl = ExclusionSet.from_settings(RenameSettings())
        found = _rel(starter_tree, walk_files(starter_tree, excl, skip_excluded_files=False))
        assert ".env.example" in found
        assert "packages/backend/.env.example" in found
        # Directory pruning still applies.
        assert not any(p.startswith("node_modules/") for p in found)

    def test_relative_path_exclusion(self, starter_tree):
        excl = ExclusionSet.build(relative_paths=["packages/storefront"])
        found = _rel(starter_tree, walk_files(starter_tree, excl))
        assert not any(p.startswith("packages/storefront/") for p in found)
        assert "packages/backend/src/index.ts" in found

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlinks_not_followed(self, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "secret.txt").write_text("x")
        root = tmp_path / "root"
        root.mkdir()
        (root / "real.txt").write_text("x")
        (root / "link").symlink_to(outside, target_is_directory=True)
        (root / "file-link.txt").symlink_to(outside / "secret.txt")

        assert _rel(root, walk_files(root, ExclusionSet())) == ["real.txt"]

    def test_missing_root_raises_without_onerror(self, tmp_path):
        with pytest.raises(OSError):
            list(walk_files(tmp_path / "nope", ExclusionSet()))

    def test_onerror_receives_unlistable_directory(self, tmp_path):
        errors = []
        missing = tmp_path / "nope"
        found = list(walk_files(missing, ExclusionSet(), onerror=lambda p, e: errors.append(p)))
        assert found == []
        assert errors == [missing]
