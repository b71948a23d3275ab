"""Grove language server.

Registers LSP capabilities on a pygls server and forwards every request to a
:class:`~grove.api.GroveSession`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Awaitable, Callable, TypeVar

from lsprotocol import types as lsp
from pygls.lsp.server import LanguageServer

from . import __version__
from .api import GroveSession
from .cancellation import CancellationToken
from .config import Config, config_from_json, load_config
from .errors import ConfigError, GroveError, RootResolutionError
from .features import (
    CompletionItem,
    Location,
    Position,
    Range,
    SymbolRecord,
    TextDocument,
)
from .text import Messages
from .triggers import TRIGGER_CHARACTERS
from .utils import path_from_uri

logger = logging.getLogger(__name__)

T = TypeVar("T")

SERVER_NAME = "grove"
SETTINGS_SECTION = "forester"
COMMAND_NEW = "grove.new"
COMMAND_REFRESH = "grove.refresh"


class GroveLanguageServer(LanguageServer):
    """pygls server holding one Grove session for the open workspace."""

    def __init__(self, *args, config: Config | None = None, watch: bool = True, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.config = config
        self.watch = watch
        self.session: GroveSession | None = None

    def grove_session(self) -> GroveSession:
        if self.session is None:
            self.session = GroveSession(
                _workspace_folders(self),
                config=self.config if self.config is not None else load_config(),
            )
        return self.session

    def report_error(self, exc: GroveError) -> None:
        self.window_show_message(
            lsp.ShowMessageParams(type=lsp.MessageType.Error, message=str(exc))
        )


def _workspace_folders(ls: LanguageServer) -> list[Path]:
    workspace = ls.workspace
    folders = [path_from_uri(folder.uri) for folder in workspace.folders.values()]
    if not folders and workspace.root_path:
        folders = [Path(workspace.root_path)]
    return folders


async def run_with_token(
    run: Callable[[CancellationToken], Awaitable[T]],
) -> T:
    """Run *run* with a fresh token that fires when this task is cancelled.

    ``$/cancelRequest`` cancels the handler task; the work itself is shielded
    so the token, not task cancellation, decides what happens to the shared
    rebuild.
    """

    token = CancellationToken()
    work = asyncio.ensure_future(run(token))
    try:
        return await asyncio.shield(work)
    except asyncio.CancelledError:
        token.cancel()
        work.add_done_callback(_discard)
        raise


def _discard(task: "asyncio.Future[Any]") -> None:
    if not task.cancelled():
        task.exception()


def _document(ls: GroveLanguageServer, uri: str) -> TextDocument:
    doc = ls.workspace.get_text_document(uri)
    return TextDocument(path=path_from_uri(uri), text=doc.source)


def _position(position: lsp.Position) -> Position:
    return Position(position.line, position.character)


def to_lsp_range(value: Range) -> lsp.Range:
    return lsp.Range(
        start=lsp.Position(line=value.start.line, character=value.start.character),
        end=lsp.Position(line=value.end.line, character=value.end.character),
    )


def to_lsp_location(location: Location) -> lsp.Location:
    return lsp.Location(uri=location.path.as_uri(), range=to_lsp_range(location.range))


def to_lsp_symbol(symbol: SymbolRecord) -> lsp.SymbolInformation:
    return lsp.SymbolInformation(
        name=symbol.name,
        kind=lsp.SymbolKind.Class,
        location=to_lsp_location(symbol.location),
        container_name=symbol.container,
    )


def to_lsp_completion(item: CompletionItem) -> lsp.CompletionItem:
    return lsp.CompletionItem(
        label=item.label,
        label_details=lsp.CompletionItemLabelDetails(description=item.description),
        kind=lsp.CompletionItemKind.Value,
        detail=item.detail,
        documentation=item.documentation or None,
        filter_text=item.filter_text,
        text_edit=lsp.TextEdit(range=to_lsp_range(item.range), new_text=item.insert_text),
    )


def config_from_settings(settings: object, base: Config) -> Config:
    """Apply client settings under the ``forester`` section to *base*."""
    if not isinstance(settings, Mapping):
        return base
    section = settings.get(SETTINGS_SECTION, settings)
    if not isinstance(section, Mapping):
        return base
    payload: dict[str, object] = {}
    if section.get("path") is not None:
        payload["forester_path"] = section["path"]
    if section.get("config") is not None:
        payload["forest_config"] = section["config"]
    completion = section.get("completion")
    if isinstance(completion, Mapping) and completion.get("showID") is not None:
        payload["show_id"] = completion["showID"]
    create = section.get("create")
    if isinstance(create, Mapping) and create.get("random") is not None:
        payload["random_ids"] = create["random"]
    return config_from_json(payload, base=base)


async def initialized(ls: GroveLanguageServer, params: lsp.InitializedParams) -> None:
    if not ls.watch:
        return
    try:
        ls.grove_session().start_watching(asyncio.get_running_loop())
    except RootResolutionError as exc:
        logger.warning("Not watching corpus: %s", exc)
    except OSError as exc:
        logger.warning("Unable to start file watcher: %s", exc)


async def definition(ls: GroveLanguageServer, params: lsp.DefinitionParams) -> lsp.Location | None:
    session = ls.grove_session()
    document = _document(ls, params.text_document.uri)
    try:
        location = await run_with_token(
            lambda token: session.definition(document, _position(params.position), token)
        )
    except RootResolutionError as exc:
        ls.report_error(exc)
        return None
    return None if location is None else to_lsp_location(location)


async def hover(ls: GroveLanguageServer, params: lsp.HoverParams) -> lsp.Hover | None:
    session = ls.grove_session()
    document = _document(ls, params.text_document.uri)
    try:
        result = await run_with_token(
            lambda token: session.hover(document, _position(params.position), token)
        )
    except RootResolutionError as exc:
        ls.report_error(exc)
        return None
    if result is None:
        return None
    return lsp.Hover(
        contents=lsp.MarkupContent(kind=lsp.MarkupKind.Markdown, value=result.contents),
        range=None if result.range is None else to_lsp_range(result.range),
    )


async def workspace_symbol(
    ls: GroveLanguageServer, params: lsp.WorkspaceSymbolParams
) -> list[lsp.SymbolInformation]:
    session = ls.grove_session()
    try:
        symbols = await run_with_token(lambda token: session.symbols(params.query, token))
    except RootResolutionError as exc:
        ls.report_error(exc)
        return []
    return [to_lsp_symbol(symbol) for symbol in symbols]


async def completion(ls: GroveLanguageServer, params: lsp.CompletionParams) -> lsp.CompletionList:
    session = ls.grove_session()
    document = _document(ls, params.text_document.uri)
    try:
        items = await run_with_token(
            lambda token: session.completions(document, _position(params.position), token)
        )
    except RootResolutionError as exc:
        ls.report_error(exc)
        items = []
    return lsp.CompletionList(
        is_incomplete=False,
        items=[to_lsp_completion(item) for item in items],
    )


def did_change_watched_files(
    ls: GroveLanguageServer, params: lsp.DidChangeWatchedFilesParams
) -> None:
    tracker = ls.grove_session().tracker
    for change in params.changes:
        try:
            path = path_from_uri(change.uri)
        except ValueError:
            continue
        if change.type == lsp.FileChangeType.Created:
            tracker.notify_created(path)
        elif change.type == lsp.FileChangeType.Deleted:
            tracker.notify_deleted(path)
        else:
            tracker.notify_changed(path)


def did_change_configuration(
    ls: GroveLanguageServer, params: lsp.DidChangeConfigurationParams
) -> None:
    session = ls.grove_session()
    try:
        config = config_from_settings(params.settings, session.config)
    except ValueError as exc:
        ls.report_error(ConfigError(str(exc)))
        return
    session.apply_config(config)


def did_change_workspace_folders(
    ls: GroveLanguageServer, params: lsp.DidChangeWorkspaceFoldersParams
) -> None:
    session = ls.grove_session()
    session.stop_watching()
    session.set_folders(_workspace_folders(ls))
    if ls.watch and session.folders:
        session.start_watching(asyncio.get_running_loop())


async def new_tree(ls: GroveLanguageServer, *args: Any) -> str | None:
    """Create a tree; arguments are ``[dest, prefix, template?]``.

    Returns the URI of the created file, or None when forester printed no path.
    """

    if len(args) < 2:
        ls.report_error(GroveError(Messages.ERROR_NEW_ARGUMENTS))
        return None
    dest, prefix = str(args[0]), str(args[1])
    template = str(args[2]) if len(args) > 2 and args[2] else None
    dest_path = path_from_uri(dest) if "://" in dest else Path(dest)
    try:
        created = await ls.grove_session().create_tree(prefix, dest=dest_path, template=template)
    except (GroveError, ValueError) as exc:
        ls.report_error(exc if isinstance(exc, GroveError) else GroveError(str(exc)))
        return None
    return None if created is None else created.as_uri()


def refresh(ls: GroveLanguageServer, *args: Any) -> None:
    ls.grove_session().invalidate()


async def shutdown(ls: GroveLanguageServer, params: None) -> None:
    if ls.session is not None:
        await ls.session.aclose()


def create_server(*, config: Config | None = None, watch: bool = True) -> GroveLanguageServer:
    server = GroveLanguageServer(
        SERVER_NAME,
        __version__,
        config=config,
        watch=watch,
        text_document_sync_kind=lsp.TextDocumentSyncKind.Full,
    )
    server.feature(lsp.INITIALIZED)(initialized)
    server.feature(lsp.TEXT_DOCUMENT_DEFINITION)(definition)
    server.feature(lsp.TEXT_DOCUMENT_HOVER)(hover)
    server.feature(lsp.WORKSPACE_SYMBOL)(workspace_symbol)
    server.feature(
        lsp.TEXT_DOCUMENT_COMPLETION,
        lsp.CompletionOptions(trigger_characters=list(TRIGGER_CHARACTERS)),
    )(completion)
    server.feature(lsp.WORKSPACE_DID_CHANGE_WATCHED_FILES)(did_change_watched_files)
    server.feature(lsp.WORKSPACE_DID_CHANGE_CONFIGURATION)(did_change_configuration)
    server.feature(lsp.WORKSPACE_DID_CHANGE_WORKSPACE_FOLDERS)(did_change_workspace_folders)
    server.feature(lsp.SHUTDOWN)(shutdown)
    server.command(COMMAND_NEW)(new_tree)
    server.command(COMMAND_REFRESH)(refresh)
    return server


def serve(*, config: Config | None = None, watch: bool = True) -> None:
    """Run the language server over stdio."""
    create_server(config=config, watch=watch).start_io()
