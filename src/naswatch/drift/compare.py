"""File and tree comparison."""

from __future__ import annotations

import difflib
import filecmp
import os
import re
from collections.abc import Iterable
from fnmatch import fnmatch
from pathlib import Path

from naswatch.drift.types import DEFAULT_TREE_EXCLUDES, DriftOutcome

_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_lines(text: str) -> list[str]:
    """Collapse whitespace runs, strip line ends, and drop blank lines."""
    normalized = []
    for line in text.splitlines():
        collapsed = _WHITESPACE_RUN.sub(" ", line).rstrip()
        if collapsed.strip():
            normalized.append(collapsed)
    return normalized


def _read_normalized(path: Path) -> list[str]:
    # surrogateescape keeps undecodable bytes distinct instead of failing
    return normalize_lines(path.read_text(encoding="utf-8", errors="surrogateescape"))


def compare_files(source: Path, reference: Path) -> DriftOutcome:
    """Compare a live file against its staged reference.

    Whitespace-only differences (amount of inner whitespace, trailing
    whitespace, blank lines) are not drift.
    """
    if not source.is_file():
        return DriftOutcome.MISSING_SOURCE
    if not reference.is_file():
        return DriftOutcome.MISSING_REFERENCE
    if _read_normalized(source) == _read_normalized(reference):
        return DriftOutcome.MATCH
    return DriftOutcome.DRIFT


def diff_lines(source: Path, reference: Path, *, limit: int = 200) -> list[str]:
    """Unified diff of the normalized contents, capped at ``limit`` lines."""
    lines = list(
        difflib.unified_diff(
            _read_normalized(source),
            _read_normalized(reference),
            fromfile=str(source),
            tofile=str(reference),
            lineterm="",
        )
    )
    if len(lines) > limit:
        omitted = len(lines) - limit
        lines = lines[:limit] + [f"... ({omitted} more diff lines omitted)"]
    return lines


def _is_excluded(rel_path: str, patterns: Iterable[str]) -> bool:
    parts = rel_path.split("/")
    for pattern in patterns:
        if fnmatch(rel_path, pattern):
            return True
        if any(fnmatch(part, pattern) for part in parts):
            return True
    return False


def _walk_tree(root: Path, patterns: tuple[str, ...]) -> tuple[set[str], set[str]]:
    """Return (files, dirs) below root as POSIX relative paths, minus exclusions."""
    files: set[str] = set()
    dirs: set[str] = set()
    for current, dirnames, filenames in os.walk(root):
        rel_dir = Path(current).relative_to(root).as_posix()
        prefix = "" if rel_dir == "." else f"{rel_dir}/"

        kept_dirs = []
        for name in sorted(dirnames):
            rel = f"{prefix}{name}"
            if _is_excluded(rel, patterns):
                continue
            kept_dirs.append(name)
            dirs.add(rel)
        dirnames[:] = kept_dirs

        for name in filenames:
            rel = f"{prefix}{name}"
            if not _is_excluded(rel, patterns):
                files.add(rel)
    return files, dirs


def tree_differences(
    root_a: Path,
    root_b: Path,
    exclude_patterns: Iterable[str] = DEFAULT_TREE_EXCLUDES,
) -> list[str]:
    """List relative paths that differ or exist on one side only."""
    patterns = tuple(exclude_patterns)
    files_a, dirs_a = _walk_tree(root_a, patterns)
    files_b, dirs_b = _walk_tree(root_b, patterns)

    differing = (files_a ^ files_b) | (dirs_a ^ dirs_b)
    for rel in sorted(files_a & files_b):
        if not filecmp.cmp(root_a / rel, root_b / rel, shallow=False):
            differing.add(rel)
    return sorted(differing)


def compare_trees(
    root_a: Path,
    root_b: Path,
    exclude_patterns: Iterable[str] = DEFAULT_TREE_EXCLUDES,
) -> DriftOutcome:
    """Coarse recursive comparison of two trees.

    Files are compared byte for byte. Paths matching any exclusion glob (by
    relative path or by any single path component) are ignored on both
    sides. A path present on one side only is DRIFT.
    """
    if not root_a.is_dir():
        return DriftOutcome.MISSING_SOURCE
    if not root_b.is_dir():
        return DriftOutcome.MISSING_REFERENCE
    if tree_differences(root_a, root_b, exclude_patterns):
        return DriftOutcome.DRIFT
    return DriftOutcome.MATCH
