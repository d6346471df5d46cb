"""Depth-first directory walk with exclusion pruning."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Callable, Iterable, Iterator

from starterkit.config import RenameSettings


def _normalize_rel(value: str | PurePosixPath) -> str:
    return PurePosixPath(str(value).replace("\\", "/")).as_posix().strip("/")


@dataclass(frozen=True)
class ExclusionSet:
    """Names and root-relative paths that the walk never touches.

    Directories matching by name or relative path are pruned, so nothing
    below them is visited.  Files are skipped by name or relative path.
    """

    file_names: frozenset[str] = field(default_factory=frozenset)
    dir_names: frozenset[str] = field(default_factory=frozenset)
    relative_paths: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def build(
        cls,
        file_names: Iterable[str] = (),
        dir_names: Iterable[str] = (),
        relative_paths: Iterable[str] = (),
    ) -> "ExclusionSet":
        return cls(
            file_names=frozenset(file_names),
            dir_names=frozenset(dir_names),
            relative_paths=frozenset(_normalize_rel(p) for p in relative_paths),
        )

    @classmethod
    def from_settings(cls, settings: RenameSettings) -> "ExclusionSet":
        return cls.build(
            file_names=settings.excluded_files,
            dir_names=settings.excluded_dirs,
            relative_paths=settings.excluded_paths,
        )

    def excludes_dir(self, name: str, relative_path: str) -> bool:
        return name in self.dir_names or _normalize_rel(relative_path) in self.relative_paths

    def excludes_file(self, name: str, relative_path: str) -> bool:
        return name in self.file_names or _normalize_rel(relative_path) in self.relative_paths


def walk_files(
    root: Path,
    exclusions: ExclusionSet,
    *,
    skip_excluded_files: bool = True,
    onerror: Callable[[Path, OSError], None] | None = None,
) -> Iterator[Path]:
    """Yield regular files under *root*, depth-first, in name order.

    Symbolic links are never followed or yielded.  Directory pruning always
    applies; file-name exclusions apply only when *skip_excluded_files* is
    set (template discovery needs to see excluded marker files).

    Args:
        root: Directory to walk.
        exclusions: What to prune and skip.
        skip_excluded_files: Whether to drop files matched by *exclusions*.
        onerror: Called with the directory and the error when a directory
            cannot be listed; the walk then carries on with its siblings.
    """
    root = Path(root)
    stack: list[Path] = [root]

    while stack:
        directory = stack.pop()
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as exc:
            if onerror is None:
                raise
            onerror(directory, exc)
            continue

        subdirs: list[Path] = []
        for entry in entries:
            path = Path(entry.path)
            rel = path.relative_to(root).as_posix()
            if entry.is_symlink():
                continue
            if entry.is_dir(follow_symlinks=False):
                if not exclusions.excludes_dir(entry.name, rel):
                    subdirs.append(path)
            elif entry.is_file(follow_symlinks=False):
                if skip_excluded_files and exclusions.excludes_file(entry.name, rel):
                    continue
                yield path

        # Reversed so the next pop visits the first subdirectory by name.
        stack.extend(reversed(subdirs))
