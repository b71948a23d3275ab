"""Grove package initialization."""

from __future__ import annotations

__version__ = "0.1.0"

from .api import GroveSession
from .cancellation import CancellationToken
from .entries import Entry, ResultSet
from .errors import ConfigError, GroveError, RebuildError, RootResolutionError

__all__ = [
    "__version__",
    "CancellationToken",
    "ConfigError",
    "Entry",
    "GroveError",
    "GroveSession",
    "RebuildError",
    "ResultSet",
    "RootResolutionError",
    "get_version",
]


def get_version() -> str:
    """Return the current package version."""
    return __version__
