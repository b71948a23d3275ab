"""Editor features projected from the current result set."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from .cache import QueryCacheCoordinator
from .cancellation import CancellationToken
from .entries import Entry, ResultSet
from .errors import RebuildError
from .triggers import find_trigger

logger = logging.getLogger(__name__)

WORD_PATTERN = re.compile(r"[\w-]+")
DEFAULT_TAXON_LABEL = "Tree"


@dataclass(frozen=True, slots=True)
class Position:
    line: int
    character: int


@dataclass(frozen=True, slots=True)
class Range:
    start: Position
    end: Position

    @classmethod
    def origin(cls) -> "Range":
        return cls(Position(0, 0), Position(0, 0))


@dataclass(frozen=True, slots=True)
class Location:
    path: Path
    range: Range


@dataclass(frozen=True, slots=True)
class HoverResult:
    contents: str
    range: Range | None = None


@dataclass(frozen=True, slots=True)
class SymbolRecord:
    name: str
    kind: str
    container: str
    location: Location


@dataclass(frozen=True, slots=True)
class CompletionItem:
    label: str
    description: str
    detail: str
    filter_text: str
    insert_text: str
    documentation: str
    range: Range


@dataclass(frozen=True, slots=True)
class TextDocument:
    """In-memory snapshot of an open document."""

    path: Path
    text: str

    def line_at(self, line: int) -> str:
        lines = self.text.splitlines()
        if 0 <= line < len(lines):
            return lines[line]
        return ""

    def word_range_at(self, position: Position) -> tuple[str, Range] | None:
        """Return the word touching *position* and its range, if any."""
        line = self.line_at(position.line)
        for found in WORD_PATTERN.finditer(line):
            if found.start() <= position.character <= found.end():
                return found.group(0), Range(
                    Position(position.line, found.start()),
                    Position(position.line, found.end()),
                )
        return None

    def prefix_at(self, position: Position) -> str:
        return self.line_at(position.line)[: position.character]


@dataclass
class ProviderSettings:
    show_id: bool = False


class FeatureProviders:
    """Definition, hover, workspace symbol and completion providers.

    Each call fetches the current result set through the coordinator. A
    failed rebuild degrades to "no results"; a missing workspace root
    propagates to the caller.
    """

    def __init__(
        self,
        coordinator: QueryCacheCoordinator,
        settings: ProviderSettings | None = None,
    ) -> None:
        self.coordinator = coordinator
        self.settings = settings if settings is not None else ProviderSettings()

    async def provide_definition(
        self,
        document: TextDocument,
        position: Position,
        token: CancellationToken | None = None,
    ) -> Location | None:
        word = document.word_range_at(position)
        if word is None:
            return None
        entry = (await self._current(token)).get(word[0])
        if entry is None:
            return None
        return _location_for(entry)

    async def provide_hover(
        self,
        document: TextDocument,
        position: Position,
        token: CancellationToken | None = None,
    ) -> HoverResult | None:
        word = document.word_range_at(position)
        if word is None:
            return None
        entry = (await self._current(token)).get(word[0])
        if entry is None:
            return None
        return HoverResult(contents=hover_text(entry), range=word[1])

    async def provide_workspace_symbols(
        self,
        query: str,
        token: CancellationToken | None = None,
    ) -> list[SymbolRecord]:
        needle = query.lower()
        symbols: list[SymbolRecord] = []
        for entry in (await self._current(token)).values():
            if not _matches_query(entry, needle):
                continue
            symbols.append(
                SymbolRecord(
                    name=entry.title or entry.id,
                    kind="class",
                    container=entry.id,
                    location=_location_for(entry),
                )
            )
        return symbols

    async def provide_completions(
        self,
        document: TextDocument,
        position: Position,
        token: CancellationToken | None = None,
    ) -> list[CompletionItem]:
        trigger = find_trigger(document.prefix_at(position))
        if trigger is None:
            return []
        replace = Range(Position(position.line, trigger.start), position)
        results = await self._current(token)
        show_id = self.settings.show_id
        return [completion_item(entry, replace, show_id=show_id) for entry in results.values()]

    async def _current(self, token: CancellationToken | None) -> ResultSet:
        try:
            return await self.coordinator.get_current(token)
        except RebuildError as exc:
            logger.debug("No results while the index is failing: %s", exc)
            return ResultSet.empty()


def hover_text(entry: Entry) -> str:
    parts: list[str] = []
    if entry.taxon:
        parts.append(f"_{entry.taxon}._")
    if entry.title:
        parts.append(entry.title)
    return " ".join(parts)


def completion_label(entry: Entry, *, show_id: bool = False) -> str:
    if not entry.title:
        return f"[{entry.id}]"
    if show_id:
        return f"[{entry.id}] {entry.title}"
    return entry.title


def completion_item(entry: Entry, replace: Range, *, show_id: bool = False) -> CompletionItem:
    return CompletionItem(
        label=completion_label(entry, show_id=show_id),
        description=entry.taxon or "",
        detail=f"{entry.taxon or DEFAULT_TAXON_LABEL} [{entry.id}]",
        filter_text=entry.search_text(),
        insert_text=entry.id,
        documentation=entry.title or "",
        range=replace,
    )


def _matches_query(entry: Entry, needle: str) -> bool:
    if not needle:
        return True
    return any(
        needle in field.lower()
        for field in (entry.id, entry.title or "", entry.taxon or "")
    )


def _location_for(entry: Entry) -> Location:
    return Location(path=Path(entry.source_path), range=Range.origin())
