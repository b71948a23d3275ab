"""Exception types shared across Grove."""

from __future__ import annotations


class GroveError(Exception):
    """Base class for user-facing Grove failures."""


class RootResolutionError(GroveError):
    """Raised when no workspace root is available for a request."""


class RebuildError(GroveError):
    """Raised when the external indexer fails to produce a result set."""


class ConfigError(GroveError):
    """Raised when the forest configuration file is missing or malformed."""


class CommandError(RebuildError):
    """Raised when a one-shot ``forester`` command fails."""
