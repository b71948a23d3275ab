"""Completion trigger registry.

A trigger recognises the text just before the cursor as a place where a tree
id is expected, e.g. ``\\transclude{`` or a wikilink ``[[``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict

TRIGGER_CHARACTERS: tuple[str, ...] = ("{", "(", "[")


@dataclass(frozen=True, slots=True)
class TriggerMatch:
    trigger: str
    start: int
    """Column where the partially typed id begins."""
    query: str


@dataclass(frozen=True, slots=True)
class CompletionTrigger:
    name: str
    pattern: re.Pattern[str]

    def match(self, prefix: str) -> TriggerMatch | None:
        found = self.pattern.search(prefix)
        if found is None:
            return None
        return TriggerMatch(
            trigger=self.name,
            start=found.start("query"),
            query=found.group("query"),
        )

    def anchor(self, prefix: str) -> int | None:
        """Return the column where the whole trigger begins, if it matches."""
        found = self.pattern.search(prefix)
        return None if found is None else found.start()


def _command_trigger(command: str) -> CompletionTrigger:
    return CompletionTrigger(
        name=command,
        pattern=re.compile(r"\\" + re.escape(command) + r"\{(?P<query>[^}]*)$"),
    )


_TRIGGERS: Dict[str, CompletionTrigger] = {
    trigger.name: trigger
    for trigger in (
        _command_trigger("transclude"),
        _command_trigger("import"),
        _command_trigger("export"),
        _command_trigger("ref"),
        _command_trigger("citek"),
        CompletionTrigger(
            name="markdown-link",
            pattern=re.compile(r"\[[^\[]*\]\((?P<query>[^)]*)$"),
        ),
        CompletionTrigger(
            name="wikilink",
            pattern=re.compile(r"\[\[(?P<query>[^\]]*)$"),
        ),
        CompletionTrigger(
            name="citet",
            pattern=re.compile(r"\\citet\{[^}]*\}\{(?P<query>[^}]*)$"),
        ),
    )
}


def get_trigger(name: str) -> CompletionTrigger:
    try:
        return _TRIGGERS[name]
    except KeyError as exc:
        raise ValueError(f"Unsupported trigger: {name}") from exc


def available_triggers() -> list[str]:
    return sorted(_TRIGGERS.keys())


def find_trigger(prefix: str) -> TriggerMatch | None:
    """Return the trigger that applies to *prefix* (text before the cursor).

    When several triggers match, the one starting furthest left wins, so
    ``\\ref{[[`` completes the ``\\ref`` argument rather than the wikilink.
    """

    best: tuple[int, TriggerMatch] | None = None
    for trigger in _TRIGGERS.values():
        anchor = trigger.anchor(prefix)
        if anchor is None:
            continue
        if best is None or anchor < best[0]:
            match = trigger.match(prefix)
            if match is not None:
                best = (anchor, match)
    return None if best is None else best[1]
