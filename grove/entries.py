"""Indexed entries and the immutable result sets built from them."""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from .errors import RebuildError
from .text import Messages


@dataclass(frozen=True, slots=True)
class Entry:
    """Metadata for a single indexed tree."""

    id: str
    source_path: str
    title: str | None = None
    taxon: str | None = None
    tags: tuple[str, ...] = ()
    route: str = ""
    metas: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def search_text(self) -> str:
        """Return the text used for completion filtering."""
        return f"{self.id} {self.title or ''} {self.taxon or ''}"


class ResultSet(Mapping[str, Entry]):
    """Read-only mapping of entry id to :class:`Entry`.

    A result set is produced by exactly one rebuild and replaced wholesale by
    the next one; it exposes no mutating operations.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, Entry] | None = None) -> None:
        self._entries: Mapping[str, Entry] = MappingProxyType(dict(entries or {}))

    @classmethod
    def from_entries(cls, entries: Iterable[Entry]) -> "ResultSet":
        return cls({entry.id: entry for entry in entries})

    @classmethod
    def empty(cls) -> "ResultSet":
        return cls()

    def __getitem__(self, key: str) -> Entry:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ResultSet({len(self._entries)} entries)"


def parse_query_output(raw: str | bytes) -> ResultSet:
    """Parse the JSON printed by ``forester query all`` into a result set."""

    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise RebuildError(Messages.ERROR_QUERY_JSON_INVALID.format(reason=str(exc))) from exc
    return result_set_from_payload(payload)


def result_set_from_payload(payload: object) -> ResultSet:
    """Build a result set from a decoded query payload.

    Both the object form (``{id: record}``) and the list form (records that
    carry their own ``id`` or ``uri``) are accepted.
    """

    if isinstance(payload, Mapping):
        items = [(str(key), value) for key, value in payload.items()]
    elif isinstance(payload, list):
        items = []
        for record in payload:
            if not isinstance(record, Mapping):
                raise RebuildError(Messages.ERROR_QUERY_RECORD_INVALID.format(record=record))
            key = record.get("id") or record.get("uri")
            if not isinstance(key, str) or not key:
                raise RebuildError(Messages.ERROR_QUERY_RECORD_INVALID.format(record=record))
            items.append((key, record))
    else:
        raise RebuildError(Messages.ERROR_QUERY_PAYLOAD_INVALID)
    return ResultSet.from_entries([_entry_from_record(key, value) for key, value in items])


def _entry_from_record(entry_id: str, record: object) -> Entry:
    if not isinstance(record, Mapping):
        raise RebuildError(Messages.ERROR_QUERY_RECORD_INVALID.format(record=record))
    source_path = record.get("sourcePath")
    if not isinstance(source_path, str) or not source_path:
        raise RebuildError(Messages.ERROR_QUERY_RECORD_INVALID.format(record=record))
    return Entry(
        id=entry_id,
        source_path=source_path,
        title=_optional_str(record.get("title")),
        taxon=_optional_str(record.get("taxon")),
        tags=tuple(str(tag) for tag in (record.get("tags") or ())),
        route=_optional_str(record.get("route")) or "",
        metas=MappingProxyType(_coerce_metas(record.get("metas"))),
    )


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _coerce_metas(value: object) -> dict[str, str]:
    if not isinstance(value, Mapping):
        return {}
    return {str(key): str(item) for key, item in value.items()}
