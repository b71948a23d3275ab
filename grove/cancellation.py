"""Per-request cancellation tokens and the bridge that races them against rebuilds."""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import TYPE_CHECKING, Callable

from .entries import ResultSet

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .cache import CacheState

logger = logging.getLogger(__name__)

CancelHandler = Callable[[], None]


class Registration:
    """Handle returned by :meth:`CancellationToken.on_cancel`.

    Disposing removes the handler from its token; repeated calls are no-ops.
    """

    __slots__ = ("_token", "_key")

    def __init__(self, token: "CancellationToken | None", key: int) -> None:
        self._token = token
        self._key = key

    @property
    def disposed(self) -> bool:
        return self._token is None

    def dispose(self) -> None:
        token, self._token = self._token, None
        if token is not None:
            token._remove(self._key)

    def __enter__(self) -> "Registration":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()


class CancellationToken:
    """Cooperative cancellation signal.

    Used both for individual requests and as the abort signal handed to the
    external indexer. Handlers run synchronously, in registration order, the
    first time :meth:`cancel` is called.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._handlers: dict[int, CancelHandler] = {}
        self._keys = itertools.count()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def handler_count(self) -> int:
        """Number of handlers still registered."""
        return len(self._handlers)

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        handlers = list(self._handlers.values())
        self._handlers.clear()
        for handler in handlers:
            handler()

    def on_cancel(self, handler: CancelHandler) -> Registration:
        """Register *handler*; it runs immediately if the token already fired."""
        if self._cancelled:
            handler()
            return Registration(None, -1)
        key = next(self._keys)
        self._handlers[key] = handler
        return Registration(self, key)

    def _remove(self, key: int) -> None:
        self._handlers.pop(key, None)


class CancellationBridge:
    """Race a shared rebuild against one caller's cancellation token.

    If the token fires first the caller gets an empty result set right away,
    the cache is marked stale and the in-flight rebuild is asked to abort, so
    the next request from any caller starts over.
    """

    def __init__(self, state: "CacheState") -> None:
        self._state = state

    async def race(
        self,
        shared: "asyncio.Future[ResultSet]",
        token: CancellationToken | None = None,
    ) -> ResultSet:
        if token is None:
            await asyncio.wait({shared})
            return _settled(shared)
        if token.cancelled:
            if shared.done():
                return _settled(shared)
            self._abandon()
            return ResultSet.empty()

        loop = asyncio.get_running_loop()
        fired: asyncio.Future[None] = loop.create_future()

        def _on_cancel() -> None:
            if shared.done() or fired.done():
                return
            self._abandon()
            fired.set_result(None)

        registration = token.on_cancel(_on_cancel)
        try:
            done, _ = await asyncio.wait(
                {shared, fired},
                return_when=asyncio.FIRST_COMPLETED,
            )
            if shared in done:
                return _settled(shared)
            return ResultSet.empty()
        finally:
            registration.dispose()
            if not fired.done():
                fired.cancel()

    def _abandon(self) -> None:
        logger.debug("Request cancelled; marking cache stale and aborting rebuild")
        self._state.stale = True
        abort = self._state.abort_signal
        if abort is not None:
            abort.cancel()


def _settled(shared: "asyncio.Future[ResultSet]") -> ResultSet:
    if shared.cancelled():
        return ResultSet.empty()
    return shared.result()
