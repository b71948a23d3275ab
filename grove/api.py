"""Public Python API for Grove."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Sequence

from .cache import CacheState, QueryCacheCoordinator
from .cancellation import CancellationToken
from .config import (
    Config,
    ForestSettings,
    config_from_json,
    load_config,
    load_forest_settings,
    resolve_forester_path,
)
from .entries import Entry
from .errors import ConfigError
from .features import (
    CompletionItem,
    FeatureProviders,
    HoverResult,
    Location,
    Position,
    ProviderSettings,
    SymbolRecord,
    TextDocument,
)
from .indexer import ForesterIndexer, Indexer
from .services.new_tree_service import NewTreeRequest, create_tree, list_templates
from .services.watch_service import ForestWatcher, InvalidationTracker
from .utils import build_exclude_spec, resolve_root

NO_TEMPLATE = "(No template)"


class GroveSession:
    """Everything one workspace needs to answer editor requests.

    The session owns the shared cache state, the coordinator built on it,
    the invalidation tracker that marks it stale and the feature providers
    that read from it.
    """

    def __init__(
        self,
        folders: Sequence[Path | str] = (),
        *,
        config: Config | None = None,
        indexer: Indexer | None = None,
    ) -> None:
        self.folders: list[Path] = [Path(folder) for folder in folders]
        self.config = config if config is not None else load_config()
        self._custom_indexer = indexer is not None
        self.indexer: Indexer = indexer if indexer is not None else _default_indexer(self.config)
        self.state = CacheState()
        self.coordinator = QueryCacheCoordinator(
            _IndexerProxy(self),
            self.resolve_root,
            state=self.state,
        )
        self.tracker = InvalidationTracker(
            self.state,
            self.config.extensions,
            build_exclude_spec(self.config.exclude_patterns),
            root=self.folders[0] if self.folders else None,
        )
        self.providers = FeatureProviders(
            self.coordinator,
            ProviderSettings(show_id=self.config.show_id),
        )
        self._watcher: ForestWatcher | None = None

    def resolve_root(self) -> Path:
        return resolve_root(self.folders)

    def set_folders(self, folders: Sequence[Path | str]) -> None:
        """Replace the open workspace folders and invalidate the cache."""
        self.folders = [Path(folder) for folder in folders]
        self.tracker.root = self.folders[0] if self.folders else None
        self.coordinator.invalidate()

    def apply_config(self, config: Config) -> None:
        """Switch to *config*; an index-relevant change invalidates the cache."""
        previous = self.config
        self.config = config
        self.providers.settings.show_id = config.show_id
        self.tracker.extensions = tuple(config.extensions)
        self.tracker.exclude_spec = build_exclude_spec(config.exclude_patterns)
        if (
            previous.forester_path != config.forester_path
            or previous.forest_config != config.forest_config
        ):
            if not self._custom_indexer:
                self.indexer = _default_indexer(config)
            self.coordinator.invalidate()

    def set_config_json(
        self,
        payload: Mapping[str, object] | str,
        *,
        replace: bool = False,
    ) -> Config:
        """Apply config overrides from a JSON string or mapping to this session only."""
        base = None if replace else self.config
        try:
            config = config_from_json(payload, base=base)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc
        self.apply_config(config)
        return config

    @contextmanager
    def config_context(self, payload: Mapping[str, object] | str, *, replace: bool = False):
        """Temporarily override this session's config."""
        previous = self.config
        self.set_config_json(payload, replace=replace)
        try:
            yield self
        finally:
            self.apply_config(previous)

    def invalidate(self) -> None:
        self.coordinator.invalidate()

    async def entries(self, token: CancellationToken | None = None) -> Mapping[str, Entry]:
        return await self.coordinator.get_current(token)

    async def lookup(self, tree_id: str, token: CancellationToken | None = None) -> Entry | None:
        return (await self.coordinator.get_current(token)).get(tree_id)

    async def definition(
        self,
        document: TextDocument,
        position: Position,
        token: CancellationToken | None = None,
    ) -> Location | None:
        return await self.providers.provide_definition(document, position, token)

    async def hover(
        self,
        document: TextDocument,
        position: Position,
        token: CancellationToken | None = None,
    ) -> HoverResult | None:
        return await self.providers.provide_hover(document, position, token)

    async def symbols(
        self,
        query: str,
        token: CancellationToken | None = None,
    ) -> list[SymbolRecord]:
        return await self.providers.provide_workspace_symbols(query, token)

    async def completions(
        self,
        document: TextDocument,
        position: Position,
        token: CancellationToken | None = None,
    ) -> list[CompletionItem]:
        return await self.providers.provide_completions(document, position, token)

    async def definition_for_id(self, tree_id: str) -> Location | None:
        document, position = _inline_document(tree_id, at_end=False)
        return await self.definition(document, position)

    async def hover_for_id(self, tree_id: str) -> HoverResult | None:
        document, position = _inline_document(tree_id, at_end=False)
        return await self.hover(document, position)

    async def completions_for_text(self, text: str) -> list[CompletionItem]:
        document, position = _inline_document(text, at_end=True)
        return await self.completions(document, position)

    def forest_settings(self) -> ForestSettings:
        return load_forest_settings(self.resolve_root(), self.config.forest_config)

    def templates(self) -> list[str]:
        return list_templates(self.resolve_root())

    def template_choices(self) -> list[str]:
        """Template names followed by the "no template" choice."""
        return [*self.templates(), NO_TEMPLATE]

    async def create_tree(
        self,
        prefix: str,
        *,
        dest: Path | str | None = None,
        template: str | None = None,
        random: bool | None = None,
    ) -> Path | None:
        root = self.resolve_root()
        request = NewTreeRequest(
            dest=Path(dest) if dest is not None else root,
            prefix=prefix,
            template=None if template in (None, NO_TEMPLATE) else template,
            random=self.config.random_ids if random is None else random,
        )
        created = await create_tree(self.indexer, root, request)
        if created is not None:
            self.tracker.notify_created(created)
        return created

    def start_watching(self, loop: asyncio.AbstractEventLoop | None = None) -> ForestWatcher:
        """Watch the workspace root for corpus changes with watchdog."""
        if self._watcher is None:
            root = self.resolve_root()
            self.tracker.root = root
            self._watcher = ForestWatcher(root, self.tracker, loop)
            self._watcher.start()
        return self._watcher

    def stop_watching(self) -> None:
        watcher, self._watcher = self._watcher, None
        if watcher is not None:
            watcher.stop()

    async def aclose(self) -> None:
        self.stop_watching()
        await self.coordinator.aclose()

    async def __aenter__(self) -> "GroveSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class _IndexerProxy:
    """Always delegates to the session's current indexer."""

    def __init__(self, session: GroveSession) -> None:
        self._session = session

    async def query(self, root, abort):
        return await self._session.indexer.query(root, abort)

    async def command(self, root, argv):
        return await self._session.indexer.command(root, argv)


def _default_indexer(config: Config) -> ForesterIndexer:
    return ForesterIndexer(
        resolve_forester_path(config.forester_path),
        config_file=config.forest_config,
    )


def _inline_document(text: str, *, at_end: bool) -> tuple[TextDocument, Position]:
    lines = text.splitlines() or [""]
    line = len(lines) - 1 if at_end else 0
    character = len(lines[line]) if at_end else 0
    return TextDocument(path=Path("<inline>"), text=text), Position(line, character)
