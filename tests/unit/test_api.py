from __future__ import annotations

from pathlib import Path

import pytest

from grove.api import NO_TEMPLATE, GroveSession
from grove.config import Config
from grove.errors import ConfigError, RootResolutionError
from grove.indexer import ForesterIndexer


def _session(indexer, folders=("/forest",), **config_kwargs) -> GroveSession:
    return GroveSession(folders, config=Config(**config_kwargs), indexer=indexer)


@pytest.mark.asyncio
async def test_definition_and_hover_for_id(make_indexer):
    session = _session(make_indexer())

    location = await session.definition_for_id("abc-0001")
    hover = await session.hover_for_id("abc-0001")

    assert location is not None
    assert location.path == Path("/forest/trees/abc-0001.tree")
    assert hover is not None
    assert hover.contents == "_Definition._ Foundations"
    assert await session.definition_for_id("missing-0001") is None


@pytest.mark.asyncio
async def test_requests_share_one_rebuild(make_indexer):
    indexer = make_indexer()
    session = _session(indexer)

    await session.hover_for_id("abc-0001")
    await session.symbols("")
    await session.lookup("abc-0002")

    assert indexer.calls == [Path("/forest")]


@pytest.mark.asyncio
async def test_completions_for_text_uses_end_of_text(make_indexer):
    session = _session(make_indexer())

    items = await session.completions_for_text("first line\n\\transclude{ab")

    assert {item.insert_text for item in items} == {"abc-0001", "abc-0002", "xyz-0001"}
    assert all(item.range.start.line == 1 for item in items)
    assert await session.completions_for_text("no trigger") == []


@pytest.mark.asyncio
async def test_show_id_follows_config(make_indexer):
    session = _session(make_indexer())

    session.set_config_json({"show_id": True})
    items = await session.completions_for_text("[[")

    assert "[abc-0001] Foundations" in {item.label for item in items}


@pytest.mark.asyncio
async def test_config_context_restores_previous(make_indexer):
    indexer = make_indexer()
    session = _session(indexer)
    await session.entries()

    with session.config_context('{"forest_config": "other.toml"}') as scoped:
        assert scoped.config.forest_config == "other.toml"
        assert session.state.stale is True
        await session.entries()

    assert session.config.forest_config == "forest.toml"
    assert len(indexer.calls) == 2


def test_set_config_json_rejects_bad_values(make_indexer):
    session = _session(make_indexer())

    with pytest.raises(ConfigError):
        session.set_config_json('{"show_id": "perhaps"}')


def test_apply_config_rebuilds_default_indexer():
    session = GroveSession(["/forest"], config=Config())
    assert isinstance(session.indexer, ForesterIndexer)
    session.state.stale = False

    session.apply_config(Config(forester_path="/opt/forester"))

    assert session.indexer.program == ("/opt/forester",)
    assert session.state.stale is True


def test_apply_config_keeps_cache_for_display_changes(make_indexer):
    session = _session(make_indexer())
    session.state.stale = False

    session.apply_config(Config(show_id=True, extensions=(".tree", ".md")))

    assert session.state.stale is False
    assert session.providers.settings.show_id is True
    assert session.tracker.handles("/forest/notes.md")


@pytest.mark.asyncio
async def test_missing_folder_raises(make_indexer):
    session = _session(make_indexer(), folders=())

    with pytest.raises(RootResolutionError):
        await session.entries()


def test_set_folders_invalidates(make_indexer):
    session = _session(make_indexer())
    session.state.stale = False

    session.set_folders(["/other"])

    assert session.resolve_root() == Path("/other")
    assert session.tracker.root == Path("/other")
    assert session.state.stale is True


@pytest.mark.asyncio
async def test_create_tree_runs_forester_new_and_invalidates(make_indexer):
    indexer = make_indexer()
    indexer.command_output = "trees/abc-0003.tree"
    session = _session(indexer, random_ids=True)
    session.state.stale = False

    created = await session.create_tree("abc", dest="/forest/trees", template=NO_TEMPLATE)

    assert created == Path("/forest/trees/abc-0003.tree")
    assert indexer.commands == [
        (
            Path("/forest"),
            ["new", "--dest", "/forest/trees", "--prefix", "abc", "--random"],
        )
    ]
    assert session.state.stale is True


def test_template_choices(tmp_path, make_indexer):
    (tmp_path / "templates").mkdir()
    (tmp_path / "templates" / "person.tree").write_text("")
    session = _session(make_indexer(), folders=(tmp_path,))

    assert session.template_choices() == ["person", NO_TEMPLATE]


def test_forest_settings(tmp_path, make_indexer):
    (tmp_path / "forest.toml").write_text('[forest]\nprefixes = ["abc"]\n')
    session = _session(make_indexer(), folders=(tmp_path,))

    assert session.forest_settings().prefixes == ("abc",)


@pytest.mark.asyncio
async def test_session_context_manager_closes(make_indexer):
    indexer = make_indexer(gated=True)

    async with _session(indexer) as session:
        session.coordinator.acquire()
        await indexer.wait_for_calls(1)

    assert indexer.aborts[0].cancelled
    indexer.release_all()
