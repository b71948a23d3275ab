"""Command line interface for Grove."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Coroutine, Sequence, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__, config as config_module
from .api import NO_TEMPLATE, GroveSession
from .config import DEFAULT_EXTENSIONS, load_config
from .errors import ConfigError, GroveError
from .output import format_status_icon
from .services.config_service import apply_config_updates, get_config_snapshot
from .services.system_service import load_config_for_doctor, run_all_doctor_checks
from .text import Messages, Styles
from .utils import format_path, resolve_directory

T = TypeVar("T")

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help=Messages.APP_HELP,
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"Grove v{__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logger = logging.getLogger("grove")
    logger.handlers.clear()
    handler = RichHandler(console=err_console, show_path=False, rich_tracebacks=verbose)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)


def _parse_boolean(value: str) -> bool:
    token = value.strip().lower()
    if token in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if token in {"0", "false", "f", "no", "n", "off"}:
        return False
    raise ValueError(Messages.ERROR_BOOLEAN_INVALID.format(value=value))


def _styled(text: str, style: str) -> str:
    return f"[{style}]{text}[/{style}]"


def _fail(message: str) -> typer.Exit:
    console.print(_styled(message, Styles.ERROR))
    return typer.Exit(code=1)


def _open_session(path: Path) -> GroveSession:
    try:
        root = resolve_directory(path)
    except (FileNotFoundError, NotADirectoryError) as exc:
        raise _fail(str(exc)) from exc
    try:
        config = load_config()
    except ValueError as exc:
        raise _fail(str(exc)) from exc
    return GroveSession([root], config=config)


def _run_request(session: GroveSession, request: Coroutine[object, object, T]) -> T:
    async def _main() -> T:
        try:
            return await request
        finally:
            await session.aclose()

    try:
        return asyncio.run(_main())
    except GroveError as exc:
        raise _fail(str(exc)) from exc


def _path_option() -> Path:
    return typer.Option(
        Path("."),
        "--path",
        "-p",
        help=Messages.HELP_WORKSPACE_PATH,
    )


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help=Messages.HELP_VERBOSE,
    ),
) -> None:
    """Global Typer callback for shared options."""
    _configure_logging(verbose)


@app.command()
def definition(
    tree_id: str = typer.Argument(..., metavar="ID", help=Messages.HELP_TREE_ID),
    path: Path = _path_option(),
) -> None:
    """Print the source file that defines a tree."""
    session = _open_session(path)
    location = _run_request(session, session.definition_for_id(tree_id.strip()))
    if location is None:
        console.print(_styled(Messages.INFO_TREE_NOT_FOUND.format(id=tree_id), Styles.WARNING))
        raise typer.Exit(code=1)
    console.print(str(location.path), markup=False, highlight=False)


@app.command()
def hover(
    tree_id: str = typer.Argument(..., metavar="ID", help=Messages.HELP_TREE_ID),
    path: Path = _path_option(),
) -> None:
    """Print the hover text for a tree."""
    session = _open_session(path)
    result = _run_request(session, session.hover_for_id(tree_id.strip()))
    if result is None:
        console.print(_styled(Messages.INFO_TREE_NOT_FOUND.format(id=tree_id), Styles.WARNING))
        raise typer.Exit(code=1)
    console.print(result.contents, markup=False, highlight=False)


@app.command()
def symbols(
    query: str = typer.Argument("", help=Messages.HELP_SYMBOL_QUERY),
    path: Path = _path_option(),
) -> None:
    """List trees whose id, title or taxon contains QUERY."""
    session = _open_session(path)
    records = _run_request(session, session.symbols(query))
    if not records:
        console.print(_styled(Messages.INFO_NO_RESULTS, Styles.WARNING))
        return
    root = session.folders[0]
    table = Table(title=Messages.TABLE_SYMBOLS_TITLE, header_style=Styles.TABLE_HEADER)
    table.add_column(Messages.TABLE_HEADER_ID, no_wrap=True)
    table.add_column(Messages.TABLE_HEADER_TITLE, overflow="fold")
    table.add_column(Messages.TABLE_HEADER_PATH, overflow="fold")
    for record in records:
        table.add_row(
            escape(record.container),
            escape(record.name),
            escape(format_path(record.location.path, root)),
        )
    console.print(table)


@app.command()
def complete(
    text: str = typer.Argument(..., help=Messages.HELP_COMPLETE_TEXT),
    path: Path = _path_option(),
    show_id: bool | None = typer.Option(
        None,
        "--show-id/--hide-id",
        help=Messages.HELP_SHOW_ID,
    ),
) -> None:
    """Complete tree ids for TEXT as if the cursor sat at its end."""
    session = _open_session(path)
    if show_id is not None:
        session.providers.settings.show_id = show_id
    items = _run_request(session, session.completions_for_text(text))
    if not items:
        console.print(_styled(Messages.INFO_NO_COMPLETIONS, Styles.WARNING))
        return
    table = Table(header_style=Styles.TABLE_HEADER)
    table.add_column(Messages.TABLE_HEADER_LABEL, overflow="fold")
    table.add_column(Messages.TABLE_HEADER_DETAIL, overflow="fold")
    table.add_column(Messages.TABLE_HEADER_INSERT, no_wrap=True)
    for item in items:
        table.add_row(escape(item.label), escape(item.detail), escape(item.insert_text))
    console.print(table)


@app.command()
def new(
    path: Path = _path_option(),
    dest: Path | None = typer.Option(
        None,
        "--dest",
        "-d",
        help=Messages.HELP_NEW_DEST,
    ),
    prefix: str | None = typer.Option(
        None,
        "--prefix",
        help=Messages.HELP_NEW_PREFIX,
    ),
    template: str | None = typer.Option(
        None,
        "--template",
        "-t",
        help=Messages.HELP_NEW_TEMPLATE,
    ),
    random: bool | None = typer.Option(
        None,
        "--random/--sequential",
        help=Messages.HELP_NEW_RANDOM,
    ),
) -> None:
    """Create a new tree with `forester new`."""
    session = _open_session(path)
    if prefix is None:
        try:
            prefixes = list(session.forest_settings().prefixes)
        except ConfigError as exc:
            raise _fail(str(exc)) from exc
        prefix = _prompt_prefix(prefixes)
    if template is None:
        template = _prompt_template(session.template_choices())
    try:
        created = _run_request(
            session,
            session.create_tree(
                prefix,
                dest=dest if dest is not None else session.folders[0],
                template=template,
                random=random,
            ),
        )
    except ValueError as exc:
        raise _fail(str(exc)) from exc
    if created is None:
        console.print(_styled(Messages.WARNING_NEW_NO_OUTPUT, Styles.WARNING))
        return
    console.print(_styled(Messages.INFO_NEW_CREATED.format(path=created), Styles.SUCCESS))


def _prompt_prefix(prefixes: Sequence[str]) -> str:
    if prefixes:
        console.print(_styled(Messages.PROMPT_PREFIX_CHOICES, Styles.TITLE))
        for index, value in enumerate(prefixes, start=1):
            console.print(f"  {index}. {value}", markup=False)
    while True:
        value = typer.prompt(
            Messages.PROMPT_PREFIX,
            default=prefixes[0] if prefixes else "",
            show_default=bool(prefixes),
        )
        cleaned = (value or "").strip()
        if cleaned.isdigit() and 1 <= int(cleaned) <= len(prefixes):
            return prefixes[int(cleaned) - 1]
        if cleaned:
            return cleaned
        console.print(_styled(Messages.ERROR_PREFIX_EMPTY, Styles.WARNING))


def _prompt_template(choices: Sequence[str]) -> str | None:
    if len(choices) <= 1:
        return None
    console.print(_styled(Messages.PROMPT_TEMPLATE_CHOICES, Styles.TITLE))
    for index, value in enumerate(choices, start=1):
        console.print(f"  {index}. {value}", markup=False)
    while True:
        value = typer.prompt(Messages.PROMPT_TEMPLATE, default=NO_TEMPLATE)
        cleaned = (value or "").strip()
        if cleaned.isdigit() and 1 <= int(cleaned) <= len(choices):
            cleaned = choices[int(cleaned) - 1]
        if cleaned in choices:
            return None if cleaned == NO_TEMPLATE else cleaned
        console.print(
            _styled(
                Messages.ERROR_INVALID_CHOICE.format(value=value, allowed=", ".join(choices)),
                Styles.WARNING,
            )
        )


@app.command()
def config(
    set_forester_path_option: str | None = typer.Option(
        None,
        "--set-forester-path",
        help=Messages.HELP_SET_FORESTER_PATH,
    ),
    set_forest_config_option: str | None = typer.Option(
        None,
        "--set-forest-config",
        help=Messages.HELP_SET_FOREST_CONFIG,
    ),
    set_show_id_option: str | None = typer.Option(
        None,
        "--set-show-id",
        help=Messages.HELP_SET_SHOW_ID,
    ),
    set_random_option: str | None = typer.Option(
        None,
        "--set-random",
        help=Messages.HELP_SET_RANDOM,
    ),
    set_extensions_option: list[str] | None = typer.Option(
        None,
        "--set-ext",
        help=Messages.HELP_SET_EXTENSIONS,
    ),
    clear_extensions: bool = typer.Option(
        False,
        "--clear-ext",
        help=Messages.HELP_CLEAR_EXTENSIONS,
    ),
    set_exclude_option: list[str] | None = typer.Option(
        None,
        "--set-exclude-pattern",
        help=Messages.HELP_SET_EXCLUDE_PATTERNS,
    ),
    clear_exclude: bool = typer.Option(
        False,
        "--clear-exclude-pattern",
        help=Messages.HELP_CLEAR_EXCLUDE_PATTERNS,
    ),
    show: bool = typer.Option(
        False,
        "--show",
        help=Messages.HELP_SHOW_CONFIG,
    ),
) -> None:
    """Manage Grove configuration."""
    try:
        show_id = None if set_show_id_option is None else _parse_boolean(set_show_id_option)
        random_ids = None if set_random_option is None else _parse_boolean(set_random_option)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    try:
        updates = apply_config_updates(
            forester_path=set_forester_path_option,
            forest_config=set_forest_config_option,
            show_id=show_id,
            random_ids=random_ids,
            extensions=set_extensions_option,
            clear_extensions=clear_extensions,
            exclude_patterns=set_exclude_option,
            clear_exclude_patterns=clear_exclude,
        )
    except (ValueError, OSError) as exc:
        raise _fail(str(exc)) from exc

    if updates.forester_path_set:
        console.print(
            _styled(Messages.INFO_FORESTER_PATH_SET.format(value=set_forester_path_option), Styles.SUCCESS)
        )
    if updates.forest_config_set:
        console.print(
            _styled(Messages.INFO_FOREST_CONFIG_SET.format(value=set_forest_config_option), Styles.SUCCESS)
        )
    if updates.show_id_set:
        console.print(_styled(Messages.INFO_SHOW_ID_SET.format(value=_yes_no(show_id)), Styles.SUCCESS))
    if updates.random_ids_set:
        console.print(_styled(Messages.INFO_RANDOM_SET.format(value=_yes_no(random_ids)), Styles.SUCCESS))
    if updates.extensions_set or updates.extensions_cleared:
        current = get_config_snapshot().extensions
        console.print(
            _styled(Messages.INFO_EXTENSIONS_SET.format(value=", ".join(current)), Styles.SUCCESS)
        )
    if updates.exclude_patterns_set or updates.exclude_patterns_cleared:
        current = get_config_snapshot().exclude_patterns
        console.print(
            _styled(
                Messages.INFO_EXCLUDE_PATTERNS_SET.format(value=", ".join(current) or Messages.INFO_NONE),
                Styles.SUCCESS,
            )
        )

    if show or not updates.changed:
        try:
            cfg = get_config_snapshot()
        except ValueError as exc:
            raise _fail(str(exc)) from exc
        console.print(
            _styled(
                Messages.INFO_CONFIG_SUMMARY.format(
                    path=config_module.CONFIG_FILE,
                    forester=cfg.forester_path,
                    forest_config=cfg.forest_config,
                    show_id=_yes_no(cfg.show_id),
                    random=_yes_no(cfg.random_ids),
                    extensions=", ".join(cfg.extensions or DEFAULT_EXTENSIONS),
                    excludes=", ".join(cfg.exclude_patterns) or Messages.INFO_NONE,
                ),
                Styles.INFO,
            )
        )


def _yes_no(value: bool | None) -> str:
    return "yes" if value else "no"


@app.command()
def doctor(path: Path = _path_option()) -> None:
    """Run diagnostic checks for the forester toolchain and workspace."""
    console.print(_styled(Messages.DOCTOR_TITLE.format(version=__version__), Styles.TITLE))
    console.print()

    config, config_load_error = load_config_for_doctor()
    results = []
    if config_load_error is not None:
        results.append(config_load_error)
    results.extend(run_all_doctor_checks(config, Path(path).expanduser().resolve()))

    has_failure = False
    for result in results:
        icon = format_status_icon(result.passed, console=console)
        if not result.passed:
            has_failure = True
        console.print(f"  {icon} [bold]{result.name}:[/bold] {result.message}")
        if result.detail:
            console.print(f"      [dim]{result.detail}[/dim]")

    console.print()
    if has_failure:
        console.print(_styled(Messages.DOCTOR_SOME_FAILED, Styles.WARNING))
        raise typer.Exit(code=1)
    console.print(_styled(Messages.DOCTOR_ALL_PASSED, Styles.SUCCESS))


@app.command()
def serve(
    no_watch: bool = typer.Option(
        False,
        "--no-watch",
        help=Messages.HELP_SERVE_NO_WATCH,
    ),
) -> None:
    """Run the language server over stdio."""
    from .server import serve as serve_stdio

    try:
        config = load_config()
    except ValueError as exc:
        raise _fail(str(exc)) from exc
    serve_stdio(config=config, watch=not no_watch)


def run(argv: list[str] | None = None) -> None:
    """Entry point wrapper allowing optional argument override."""
    args = list(argv) if argv is not None else sys.argv[1:]
    if argv is None:
        app()
    else:
        app(args=args)
