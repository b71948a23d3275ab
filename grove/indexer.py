"""Adapter around the external ``forester`` executable."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Protocol, Sequence

from .cancellation import CancellationToken
from .entries import ResultSet, parse_query_output
from .errors import CommandError, RebuildError
from .text import Messages

logger = logging.getLogger(__name__)

DEFAULT_FORESTER_PATH = "forester"
DEFAULT_FOREST_CONFIG = "forest.toml"


class Indexer(Protocol):
    """External process that scans the forest and reports its entries."""

    async def query(self, root: Path, abort: CancellationToken) -> ResultSet:
        """Return the entries under *root*; stop early once *abort* fires."""
        raise NotImplementedError  # pragma: no cover

    async def command(self, root: Path, argv: Sequence[str]) -> str:
        """Run a one-shot command in *root* and return its stdout."""
        raise NotImplementedError  # pragma: no cover


class ForesterIndexer:
    """Runs ``forester`` as a child process for queries and commands."""

    def __init__(
        self,
        executable: str | Sequence[str] = DEFAULT_FORESTER_PATH,
        *,
        config_file: str = DEFAULT_FOREST_CONFIG,
    ) -> None:
        if isinstance(executable, str):
            program = (executable,)
        else:
            program = tuple(executable)
        if not program or not program[0]:
            raise ValueError(Messages.ERROR_FORESTER_PATH_EMPTY)
        self.program: tuple[str, ...] = program
        self.config_file = config_file or DEFAULT_FOREST_CONFIG

    async def query(self, root: Path, abort: CancellationToken) -> ResultSet:
        args = ("query", "all", self.config_file)
        try:
            stdout = await self._run(root, args, abort)
        except CommandError as exc:
            raise RebuildError(str(exc)) from exc
        if stdout is None:
            logger.debug("forester query aborted in %s", root)
            return ResultSet.empty()
        return parse_query_output(stdout)

    async def command(self, root: Path, argv: Sequence[str]) -> str:
        stdout = await self._run(root, tuple(argv), None)
        return (stdout or b"").decode("utf-8", errors="replace")

    async def _run(
        self,
        root: Path,
        args: Sequence[str],
        abort: CancellationToken | None,
    ) -> bytes | None:
        if abort is not None and abort.cancelled:
            return None
        logger.debug("Running %s in %s", " ".join((*self.program, *args)), root)
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.program,
                *args,
                cwd=str(root),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise CommandError(
                Messages.ERROR_FORESTER_MISSING.format(program=self.program[0])
            ) from exc
        except OSError as exc:
            raise CommandError(
                Messages.ERROR_FORESTER_LAUNCH.format(program=self.program[0], reason=str(exc))
            ) from exc

        registration = abort.on_cancel(lambda: _kill(proc)) if abort is not None else None
        try:
            stdout, stderr = await proc.communicate()
        except asyncio.CancelledError:
            _kill(proc)
            await proc.wait()
            raise
        finally:
            if registration is not None:
                registration.dispose()

        if abort is not None and abort.cancelled:
            return None
        if proc.returncode != 0:
            detail = (stderr or b"").decode("utf-8", errors="replace").strip()
            raise CommandError(
                Messages.ERROR_FORESTER_FAILED.format(
                    args=" ".join(args),
                    code=proc.returncode,
                    detail=detail or "-",
                )
            )
        return stdout


def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is not None:
        return
    try:
        proc.kill()
    except ProcessLookupError:
        pass
