from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from grove.cancellation import CancellationToken
from grove.entries import Entry, ResultSet


class FakeIndexer:
    """In-process stand-in for ``forester``.

    With ``gated=True`` every query blocks until :meth:`release` is called,
    which lets tests observe the cache while a rebuild is in flight.
    """

    def __init__(self, result: ResultSet, *, gated: bool = False) -> None:
        self.result = result
        self.gated = gated
        self.error: Exception | None = None
        self.calls: list[Path] = []
        self.aborts: list[CancellationToken] = []
        self.gates: list[asyncio.Future[None]] = []
        self.commands: list[tuple[Path, list[str]]] = []
        self.command_output = ""

    async def query(self, root: Path, abort: CancellationToken) -> ResultSet:
        self.calls.append(root)
        self.aborts.append(abort)
        if self.gated:
            gate = asyncio.get_running_loop().create_future()
            self.gates.append(gate)
            await gate
        if self.error is not None:
            raise self.error
        return self.result

    async def command(self, root: Path, argv) -> str:
        self.commands.append((root, list(argv)))
        if self.error is not None:
            raise self.error
        return self.command_output

    def release(self, index: int = -1) -> None:
        gate = self.gates[index]
        if not gate.done():
            gate.set_result(None)

    def release_all(self) -> None:
        for index in range(len(self.gates)):
            self.release(index)

    async def wait_for_calls(self, count: int) -> None:
        for _ in range(200):
            started = self.gates if self.gated else self.calls
            if len(started) >= count:
                return
            await asyncio.sleep(0)
        raise AssertionError(f"indexer was called {len(self.calls)} times, expected {count}")


def _sample_entries() -> list[Entry]:
    return [
        Entry(
            id="abc-0001",
            title="Foundations",
            taxon="Definition",
            source_path="/forest/trees/abc-0001.tree",
        ),
        Entry(
            id="abc-0002",
            title="Sheaves on a site",
            source_path="/forest/trees/abc-0002.tree",
        ),
        Entry(
            id="xyz-0001",
            taxon="Theorem",
            source_path="/forest/trees/xyz-0001.tree",
        ),
    ]


@pytest.fixture
def sample_result() -> ResultSet:
    return ResultSet.from_entries(_sample_entries())


@pytest.fixture
def make_indexer(sample_result):
    def _make(*, gated: bool = False, result: ResultSet | None = None) -> FakeIndexer:
        return FakeIndexer(result if result is not None else sample_result, gated=gated)

    return _make


@pytest.fixture(autouse=True)
def temp_config_home(tmp_path, monkeypatch):
    config_dir = tmp_path / "config"
    config_file = config_dir / "config.json"
    monkeypatch.setattr("grove.config.CONFIG_DIR", config_dir)
    monkeypatch.setattr("grove.config.CONFIG_FILE", config_file)
    monkeypatch.delenv("GROVE_FORESTER_PATH", raising=False)
    return config_file
