from __future__ import annotations

import json

import pytest

from mcp_servers.websee.sourcemap.consumer import (
    IndexedSourceMapConsumer,
    SourceMapConsumer,
    SourceMapError,
    parse_source_map,
)
from mcp_servers.websee.sourcemap.vlq import VlqError, decode_segment, encode_segment


def _map(mappings: str, **extra) -> dict:
    raw = {"version": 3, "sources": ["x.js"], "names": ["f"], "mappings": mappings}
    raw.update(extra)
    return raw


def test_decode_segment_known_values() -> None:
    assert decode_segment("AAAA") == [0, 0, 0, 0]
    assert decode_segment("K") == [5]
    assert decode_segment("L") == [-5]
    assert decode_segment("gB") == [16]
    assert decode_segment("KAEAA") == [5, 0, 2, 0, 0]


def test_encode_segment_matches_decoder_fixture() -> None:
    assert encode_segment([5, 0, 2, 0, 0]) == "KAEAA"
    assert encode_segment([16, -5]) == "gBL"


@pytest.mark.parametrize("segment", ["!", "g", "AA=A"])
def test_decode_segment_rejects_garbage(segment: str) -> None:
    with pytest.raises(VlqError):
        decode_segment(segment)


def test_lookup_returns_original_position_and_name() -> None:
    consumer = SourceMapConsumer(_map("KAEAA"))
    pos = consumer.original_position_for(1, 5)
    assert pos is not None
    assert (pos.source, pos.line, pos.column, pos.name) == ("x.js", 3, 0, "f")


def test_lookup_uses_greatest_lower_bound_within_line() -> None:
    # col 0 -> x.js:1:0, col 10 -> x.js:2:4
    mappings = encode_segment([0, 0, 0, 0]) + "," + encode_segment([10, 0, 1, 4])
    consumer = SourceMapConsumer(_map(mappings))

    before = consumer.original_position_for(1, 7)
    at = consumer.original_position_for(1, 10)
    after = consumer.original_position_for(1, 500)

    assert before is not None and (before.line, before.column) == (1, 0)
    assert at is not None and (at.line, at.column) == (2, 4)
    assert after is not None and (after.line, after.column) == (2, 4)


def test_lookup_before_first_mapping_or_outside_map_is_none() -> None:
    consumer = SourceMapConsumer(_map("KAEAA"))
    assert consumer.original_position_for(1, 4) is None
    assert consumer.original_position_for(2, 0) is None
    assert consumer.original_position_for(0, 5) is None


def test_state_carries_across_lines() -> None:
    # Line 2 offsets are relative to line 1's source/original fields; column resets.
    mappings = encode_segment([0, 0, 0, 0]) + ";" + encode_segment([2, 0, 3, 1])
    consumer = SourceMapConsumer(_map(mappings))
    pos = consumer.original_position_for(2, 2)
    assert pos is not None
    assert (pos.line, pos.column) == (4, 1)


def test_single_field_segment_maps_to_nothing() -> None:
    mappings = encode_segment([0, 0, 0, 0]) + "," + encode_segment([8])
    consumer = SourceMapConsumer(_map(mappings))
    assert consumer.original_position_for(1, 3) is not None
    assert consumer.original_position_for(1, 9) is None


def test_source_root_is_applied() -> None:
    consumer = SourceMapConsumer(_map("AAAA", sourceRoot="src/", sources=["a.js"]))
    assert consumer.sources == ["src/a.js"]

    url_root = SourceMapConsumer(_map("AAAA", sourceRoot="webpack:///", sources=["./a.js"]))
    assert url_root.sources == ["webpack:///./a.js"]


def test_sources_content_missing_is_not_an_error() -> None:
    consumer = SourceMapConsumer(_map("KAEAA"))
    assert consumer.source_content_for("x.js") is None

    with_content = SourceMapConsumer(_map("KAEAA", sourcesContent=["a\nb\nfunction f() {}"]))
    assert with_content.source_content_for("x.js") == "a\nb\nfunction f() {}"


def test_parse_source_map_strips_xssi_prefix_and_bom() -> None:
    text = ")]}'\n" + json.dumps(_map("KAEAA"))
    assert parse_source_map(text).original_position_for(1, 5) is not None
    assert parse_source_map("\ufeff" + json.dumps(_map("KAEAA"))).original_position_for(1, 5) is not None
    assert parse_source_map(json.dumps(_map("KAEAA")).encode()).original_position_for(1, 5) is not None


@pytest.mark.parametrize(
    "payload",
    [
        "not json at all",
        "[1, 2, 3]",
        json.dumps({"version": 3}),
        json.dumps({"version": 2, "mappings": ""}),
        json.dumps(_map("!!!")),
        {"version": 3, "mappings": 42},
    ],
)
def test_parse_source_map_rejects_unusable_documents(payload) -> None:
    with pytest.raises(SourceMapError):
        parse_source_map(payload)


def test_indexed_map_offsets_sections() -> None:
    first = {"version": 3, "sources": ["a.js"], "names": [], "mappings": "AAAA"}
    second = {"version": 3, "sources": ["b.js"], "names": ["g"], "mappings": encode_segment([0, 0, 6, 2, 0])}
    raw = {
        "version": 3,
        "sections": [
            {"offset": {"line": 0, "column": 0}, "map": first},
            {"offset": {"line": 1, "column": 5}, "map": second},
        ],
    }
    consumer = parse_source_map(raw)
    assert isinstance(consumer, IndexedSourceMapConsumer)
    assert consumer.sources == ["a.js", "b.js"]

    a = consumer.original_position_for(1, 3)
    b = consumer.original_position_for(2, 5)
    assert a is not None and a.source == "a.js"
    assert b is not None and (b.source, b.line, b.column, b.name) == ("b.js", 7, 2, "g")


def test_indexed_map_with_url_sections_is_rejected() -> None:
    raw = {"version": 3, "sections": [{"offset": {"line": 0, "column": 0}, "url": "other.map"}]}
    with pytest.raises(SourceMapError):
        parse_source_map(raw)
