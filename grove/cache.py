"""Query cache: decides whether a request reuses, joins, or starts an index rebuild."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from .cancellation import CancellationBridge, CancellationToken
from .entries import ResultSet
from .errors import RebuildError
from .indexer import Indexer
from .text import Messages

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Idle:
    """No rebuild has been started yet."""


@dataclass(frozen=True, slots=True)
class Building:
    future: "asyncio.Future[ResultSet]"
    abort: CancellationToken


@dataclass(frozen=True, slots=True)
class Ready:
    future: "asyncio.Future[ResultSet]"
    abort: CancellationToken
    result: ResultSet


@dataclass(frozen=True, slots=True)
class Failed:
    future: "asyncio.Future[ResultSet]"
    abort: CancellationToken
    error: BaseException


CachePhase = Idle | Building | Ready | Failed


@dataclass(slots=True)
class CacheState:
    """Shared cache state; written only by the coordinator and the cancellation bridge."""

    stale: bool = True
    phase: CachePhase = field(default_factory=Idle)

    @property
    def pending(self) -> "asyncio.Future[ResultSet] | None":
        """Future of the most recent rebuild, running or finished."""
        if isinstance(self.phase, Idle):
            return None
        return self.phase.future

    @property
    def abort_signal(self) -> CancellationToken | None:
        if isinstance(self.phase, Idle):
            return None
        return self.phase.abort

    def test_and_clear(self) -> bool:
        """Return the stale flag and reset it in the same step."""
        was_stale = self.stale
        self.stale = False
        return was_stale


class QueryCacheCoordinator:
    """Single access point for the current result set.

    Requests issued while the cache is fresh share the future of the most
    recent rebuild, whether it is still running or already settled. A stale
    cache is rebuilt by exactly one caller; the superseded rebuild is asked
    to abort. Failed rebuilds stay failed until the cache is invalidated.
    """

    def __init__(
        self,
        indexer: Indexer,
        root_resolver: Callable[[], Path],
        *,
        state: CacheState | None = None,
        bridge: CancellationBridge | None = None,
    ) -> None:
        self._indexer = indexer
        self._resolve_root = root_resolver
        self._state = state if state is not None else CacheState()
        self._bridge = bridge if bridge is not None else CancellationBridge(self._state)
        self._rebuild_count = 0

    @property
    def state(self) -> CacheState:
        return self._state

    @property
    def phase(self) -> CachePhase:
        return self._state.phase

    @property
    def rebuild_count(self) -> int:
        """Number of rebuilds started by this coordinator."""
        return self._rebuild_count

    def invalidate(self) -> None:
        self._state.stale = True

    async def get_current(self, token: CancellationToken | None = None) -> ResultSet:
        """Return the current result set, or an empty one if *token* fires first."""
        shared = self.acquire()
        return await self._bridge.race(shared, token)

    def acquire(self) -> "asyncio.Future[ResultSet]":
        """Return the shared rebuild future, starting a rebuild when stale.

        Must not suspend: the stale check and the phase swap happen together.
        """
        root = self._resolve_root()
        stale = self._state.test_and_clear()
        phase = self._state.phase
        if not stale and not isinstance(phase, Idle):
            return phase.future
        return self._start_rebuild(root, phase)

    async def aclose(self) -> None:
        """Abort any in-flight rebuild and wait for it to settle."""
        phase = self._state.phase
        if not isinstance(phase, Building):
            return
        phase.abort.cancel()
        await asyncio.gather(phase.future, return_exceptions=True)

    def _start_rebuild(self, root: Path, previous: CachePhase) -> "asyncio.Future[ResultSet]":
        if isinstance(previous, Building):
            logger.debug("Aborting superseded rebuild")
            previous.abort.cancel()
        abort = CancellationToken()
        future = asyncio.ensure_future(self._rebuild(root, abort))
        self._state.phase = Building(future=future, abort=abort)
        self._rebuild_count += 1
        logger.debug("Started rebuild #%d for %s", self._rebuild_count, root)
        future.add_done_callback(self._on_rebuild_done)
        return future

    async def _rebuild(self, root: Path, abort: CancellationToken) -> ResultSet:
        loop = asyncio.get_running_loop()
        aborted: asyncio.Future[None] = loop.create_future()

        def _on_abort() -> None:
            if not aborted.done():
                aborted.set_result(None)

        registration = abort.on_cancel(_on_abort)
        query = asyncio.ensure_future(self._indexer.query(root, abort))
        try:
            done, _ = await asyncio.wait(
                {query, aborted},
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            query.cancel()
            raise
        finally:
            registration.dispose()
            if not aborted.done():
                aborted.cancel()

        if query not in done:
            logger.info("Rebuild for %s aborted before the indexer finished", root)
            query.add_done_callback(_discard_result)
            return ResultSet.empty()
        try:
            return query.result()
        except RebuildError:
            raise
        except Exception as exc:
            raise RebuildError(Messages.ERROR_REBUILD_FAILED.format(reason=str(exc))) from exc

    def _on_rebuild_done(self, future: "asyncio.Future[ResultSet]") -> None:
        if future.cancelled():
            error: BaseException | None = asyncio.CancelledError()
        else:
            error = future.exception()
        phase = self._state.phase
        if not isinstance(phase, Building) or phase.future is not future:
            return
        if error is not None:
            logger.warning("Index rebuild failed: %s", error)
            self._state.phase = Failed(future=future, abort=phase.abort, error=error)
            return
        result = future.result()
        logger.debug("Rebuild finished with %d entries", len(result))
        self._state.phase = Ready(future=future, abort=phase.abort, result=result)


def _discard_result(future: "asyncio.Future[ResultSet]") -> None:
    if not future.cancelled():
        future.exception()
