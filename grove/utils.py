"""Utility helpers for workspace roots, paths and file filters."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Sequence
from urllib.parse import unquote, urlparse

from .errors import RootResolutionError
from .text import Messages

logger = logging.getLogger(__name__)

_LIST_SPLIT = re.compile(r"[,\s]+")


def resolve_directory(path: Path | str) -> Path:
    """Resolve and validate a user supplied directory path."""
    dir_path = Path(path).expanduser().resolve()
    if not dir_path.exists():
        raise FileNotFoundError(f"Directory does not exist: {dir_path}")
    if not dir_path.is_dir():
        raise NotADirectoryError(f"Path is not a directory: {dir_path}")
    return dir_path


def resolve_root(folders: Sequence[Path | str]) -> Path:
    """Return the workspace root among the open *folders*.

    Exactly one folder is expected. With none open there is nothing to index;
    with several, the first one wins and a warning is logged.
    """
    if not folders:
        raise RootResolutionError(Messages.ERROR_NO_WORKSPACE_ROOT)
    if len(folders) > 1:
        logger.warning(Messages.WARNING_MULTIPLE_ROOTS.format(root=folders[0]))
    return Path(folders[0])


def path_from_uri(uri: str) -> Path:
    """Convert a ``file://`` URI (or a plain path) into a filesystem path."""
    parsed = urlparse(uri)
    if parsed.scheme and parsed.scheme != "file":
        raise ValueError(f"Unsupported URI scheme: {parsed.scheme}")
    if not parsed.scheme:
        return Path(uri)
    return Path(unquote(parsed.path))


def normalize_extensions(values: Iterable[str | None] | None) -> tuple[str, ...]:
    """Return a sorted, deduplicated tuple of normalized file extensions."""

    if not values:
        return ()

    normalized: set[str] = set()
    for raw in values:
        if raw is None:
            continue
        for token in _LIST_SPLIT.split(raw.strip().lower()):
            if not token:
                continue
            if not token.startswith("."):
                token = f".{token}"
            if token == ".":
                continue
            normalized.add(token)
    return tuple(sorted(normalized))


def matches_extension(path: Path | str, extensions: Sequence[str]) -> bool:
    """Return True if *path* ends with any of the provided *extensions*."""

    if not extensions:
        return True
    filename = Path(path).name.lower()
    return any(filename.endswith(ext) for ext in extensions)


def normalize_exclude_patterns(values: Iterable[str | None] | None) -> tuple[str, ...]:
    """Normalize gitignore-style exclude patterns, expanding bare extensions."""

    if not values:
        return ()

    normalized: list[str] = []
    seen: set[str] = set()
    for raw in values:
        if raw is None:
            continue
        for token in raw.split(","):
            pattern = token.strip()
            if not pattern:
                continue
            if pattern.startswith(".") and "/" not in pattern and "*" not in pattern:
                pattern = f"**/*{pattern}"
            if pattern not in seen:
                seen.add(pattern)
                normalized.append(pattern)
    return tuple(normalized)


def build_exclude_spec(patterns: Sequence[str]):
    """Compile *patterns* into a gitignore matcher, or None when empty."""
    if not patterns:
        return None
    from pathspec.gitignore import GitIgnoreSpec

    return GitIgnoreSpec.from_lines(patterns)


def is_excluded_path(spec, path: Path | str, root: Path | None = None) -> bool:
    """Return True when *path* (relative to *root* when given) matches *spec*."""
    if spec is None:
        return False
    candidate = Path(path)
    if root is not None:
        try:
            candidate = candidate.relative_to(root)
        except ValueError:
            return False
    rel = candidate.as_posix()
    if not rel or rel == ".":
        return False
    return spec.match_file(rel)


def format_path(path: Path | str, base: Path | None = None) -> str:
    """Return a user friendly representation of *path* relative to *base* when possible."""
    path = Path(path)
    if base:
        try:
            relative = path.relative_to(base)
            return f"./{relative.as_posix()}"
        except ValueError:
            return str(path)
    return str(path)
