from __future__ import annotations

import json

import pytest

from grove.entries import Entry, ResultSet, parse_query_output, result_set_from_payload
from grove.errors import RebuildError


def test_parse_object_payload():
    raw = json.dumps(
        {
            "abc-0001": {
                "title": "Foundations",
                "taxon": "Definition",
                "tags": ["intro"],
                "route": "abc-0001.xml",
                "metas": {"author": "jms"},
                "sourcePath": "/forest/trees/abc-0001.tree",
            },
            "abc-0002": {"title": None, "taxon": None, "sourcePath": "/forest/trees/abc-0002.tree"},
        }
    )

    result = parse_query_output(raw)

    assert set(result) == {"abc-0001", "abc-0002"}
    entry = result["abc-0001"]
    assert entry.title == "Foundations"
    assert entry.taxon == "Definition"
    assert entry.tags == ("intro",)
    assert entry.route == "abc-0001.xml"
    assert entry.metas["author"] == "jms"
    assert entry.source_path == "/forest/trees/abc-0001.tree"
    assert result["abc-0002"].title is None
    assert result["abc-0002"].route == ""


def test_parse_list_payload_uses_id_or_uri():
    payload = [
        {"id": "abc-0001", "title": "One", "sourcePath": "/f/one.tree"},
        {"uri": "abc-0002", "title": "Two", "sourcePath": "/f/two.tree"},
    ]

    result = result_set_from_payload(payload)

    assert result["abc-0001"].title == "One"
    assert result["abc-0002"].title == "Two"


def test_parse_accepts_bytes():
    result = parse_query_output(b'{"abc-0001": {"sourcePath": "/f/a.tree"}}')

    assert list(result) == ["abc-0001"]


def test_invalid_json_raises_rebuild_error():
    with pytest.raises(RebuildError):
        parse_query_output("not json")


@pytest.mark.parametrize("payload", [42, "text", [1, 2], [{"title": "no id"}], {"abc": "x"}])
def test_malformed_payload_raises_rebuild_error(payload):
    with pytest.raises(RebuildError):
        result_set_from_payload(payload)


def test_result_set_is_read_only():
    result = ResultSet.from_entries([Entry(id="abc-0001", source_path="/f/a.tree")])

    with pytest.raises(TypeError):
        result["abc-0002"] = Entry(id="abc-0002", source_path="/f/b.tree")  # type: ignore[index]
    with pytest.raises(TypeError):
        result["abc-0001"].metas["k"] = "v"  # type: ignore[index]


def test_result_set_copies_source_mapping():
    source = {"abc-0001": Entry(id="abc-0001", source_path="/f/a.tree")}
    result = ResultSet(source)
    source.clear()

    assert len(result) == 1
    assert repr(result) == "ResultSet(1 entries)"


def test_empty_result_set():
    empty = ResultSet.empty()

    assert len(empty) == 0
    assert empty.get("abc-0001") is None


def test_search_text_joins_id_title_taxon():
    entry = Entry(id="abc-0001", source_path="/f", title="Foundations", taxon="Definition")

    assert entry.search_text() == "abc-0001 Foundations Definition"


@pytest.mark.parametrize(
    "record",
    [{"title": "Foundations"}, {"sourcePath": None}, {"sourcePath": 3}, {"sourcePath": ""}],
)
def test_record_without_source_path_raises_rebuild_error(record):
    with pytest.raises(RebuildError, match="malformed record"):
        result_set_from_payload({"abc-0001": record})
