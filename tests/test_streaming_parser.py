"""Tests for core.streaming_parser (incremental JSON array parsing)."""

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from core.streaming_parser import (
    StreamInputError,
    StreamReadError,
    StreamStats,
    iter_json_array,
    parse_json_array_stream,
    parse_json_array_text,
)


def _chunked(text: str, size: int) -> list[str]:
    return [text[i:i + size] for i in range(0, len(text), size)]


def _failing_stream(chunks):
    yield from chunks
    raise OSError("connection reset")


ITEMS = [
    {"id": 1, "name": "Plant, with comma", "tags": ["a", "b"]},
    {"id": 2, "name": "Escaped \"quote\" and \\ backslash", "nested": {"x": [1, {"y": "]"}]}},
    {"id": 3, "name": "Brace } inside string {"},
    42,
    "plain string",
    [1, 2, 3],
    None,
]


# ── Basic iteration ──

class TestIterJsonArray:
    def test_matches_whole_buffer_parse(self):
        text = json.dumps(ITEMS)
        assert list(iter_json_array([text])) == json.loads(text)

    @pytest.mark.parametrize("size", [1, 3, 7, 64])
    def test_chunk_boundaries_do_not_matter(self, size):
        text = json.dumps(ITEMS, indent=2)
        assert list(iter_json_array(_chunked(text, size))) == ITEMS

    def test_empty_array(self):
        stats = StreamStats()
        assert list(iter_json_array(["[]"], stats=stats)) == []
        assert stats.completed is True
        assert stats.items_parsed == 0

    def test_whitespace_only_array(self):
        assert list(iter_json_array(["[ \n\t ]"])) == []

    def test_stats_counted(self):
        stats = StreamStats()
        list(iter_json_array([json.dumps(ITEMS)], stats=stats))
        assert stats.items_parsed == len(ITEMS)
        assert stats.items_skipped == 0
        assert stats.completed is True

    def test_items_yielded_before_stream_finishes(self):
        """The first item is available before later chunks are read."""
        consumed = []

        def chunks():
            for part in ['[{"id": 1},', ' {"id": 2}', "]"]:
                consumed.append(part)
                yield part

        iterator = iter_json_array(chunks())
        assert next(iterator) == {"id": 1}
        assert len(consumed) == 1

    def test_text_after_array_ignored(self):
        assert list(iter_json_array(['[1, 2] trailing garbage {"x": 1}'])) == [1, 2]


# ── Bytes and encoding ──

class TestByteChunks:
    def test_multibyte_character_split_across_chunks(self):
        data = json.dumps([{"name": "Centrale électrique Île"}], ensure_ascii=False).encode("utf-8")
        chunks = [data[i:i + 1] for i in range(len(data))]
        assert list(iter_json_array(chunks)) == [{"name": "Centrale électrique Île"}]

    def test_mixed_large_byte_chunks(self):
        data = json.dumps(ITEMS).encode("utf-8")
        assert list(iter_json_array([data[:10], data[10:]])) == ITEMS


# ── Envelopes ──

class TestArrayKey:
    def test_eia_envelope(self):
        text = json.dumps({
            "response": {"total": 2, "warnings": ["w1"], "data": [{"a": 1}, {"a": 2}]},
            "request": {"command": "/v2/electricity"},
        })
        assert list(iter_json_array(_chunked(text, 5), array_key="data")) == [{"a": 1}, {"a": 2}]

    def test_key_inside_string_value_is_not_a_key(self):
        text = '{"note": "data", "other": [9], "data": [1, 2]}'
        assert list(iter_json_array([text], array_key="data")) == [1, 2]

    def test_without_key_first_array_opens(self):
        text = '{"warnings": ["w"], "data": [1, 2]}'
        assert list(iter_json_array([text])) == ["w"]

    def test_missing_key_yields_nothing(self):
        stats = StreamStats()
        text = '{"response": {"rows": [1, 2]}}'
        assert list(iter_json_array([text], array_key="data", stats=stats)) == []
        assert stats.completed is False


class TestArrayPath:
    EIA_ECHO = {
        "request": {"params": {"data": ["nameplate-capacity-mw"], "frequency": "monthly"}},
        "response": {"total": 2, "data": [{"plantid": "3"}, {"plantid": "7"}]},
    }

    def test_earlier_array_under_other_parent_skipped(self):
        text = json.dumps(self.EIA_ECHO)
        for size in (3, 11, len(text)):
            streamed = list(iter_json_array(_chunked(text, size), array_path=["response", "data"]))
            assert streamed == parse_json_array_text(text, ["response", "data"])
            assert streamed == [{"plantid": "3"}, {"plantid": "7"}]

    def test_leaf_key_alone_opens_first_match(self):
        text = json.dumps(self.EIA_ECHO)
        assert list(iter_json_array([text], array_key="data")) == ["nameplate-capacity-mw"]

    def test_path_takes_precedence_over_key(self):
        text = json.dumps(self.EIA_ECHO)
        items = list(iter_json_array([text], array_key="data", array_path=["response", "data"]))
        assert len(items) == 2

    def test_same_key_inside_nested_array_skipped(self):
        text = '{"response": {"warnings": [{"data": [0]}], "data": [1, 2]}}'
        assert list(iter_json_array([text], array_path=["response", "data"])) == [1, 2]

    def test_key_split_across_chunks(self):
        text = '{"request": {"data": [0]}, "response": {"data": [1, 2]}}'
        chunks = [text[:25], text[25:29], text[29:]]
        assert list(iter_json_array(chunks, array_path=["response", "data"])) == [1, 2]

    def test_escaped_quote_in_key(self):
        text = '{"a\\"b": [0], "response": {"data": [5]}}'
        assert list(iter_json_array(_chunked(text, 2), array_path=["response", "data"])) == [5]

    def test_path_not_found(self):
        stats = StreamStats()
        text = '{"request": {"params": {"data": [1]}}}'
        assert list(iter_json_array([text], array_path=["response", "data"], stats=stats)) == []
        assert stats.completed is False

    def test_empty_path_opens_top_level_array(self):
        assert list(iter_json_array(["[1, 2]"], array_path=[])) == [1, 2]

    def test_callback_form(self):
        seen = []
        result = parse_json_array_stream(
            [json.dumps(self.EIA_ECHO)],
            on_item=lambda item, index: seen.append(index),
            array_path=["response", "data"],
        )
        assert seen == [0, 1]
        assert result.completed is True


# ── Malformed input ──

class TestMalformedItems:
    def test_malformed_item_skipped(self):
        stats = StreamStats()
        text = '[{"id": 1}, {"id": }, {"id": 3}]'
        assert list(iter_json_array([text], stats=stats)) == [{"id": 1}, {"id": 3}]
        assert stats.items_skipped == 1
        assert stats.items_parsed == 2
        assert stats.completed is True

    def test_bare_word_skipped(self):
        stats = StreamStats()
        assert list(iter_json_array(["[1, nope, 3]"], stats=stats)) == [1, 3]
        assert stats.items_skipped == 1

    def test_truncated_stream_keeps_parsed_items(self):
        stats = StreamStats()
        text = '[{"id": 1}, {"id": 2}, {"id": 3, "na'
        assert list(iter_json_array(_chunked(text, 4), stats=stats)) == [{"id": 1}, {"id": 2}]
        assert stats.completed is False

    def test_streaming_equals_whole_buffer_excluding_malformed(self):
        good = [{"id": i, "v": f"x{i}"} for i in range(20)]
        pieces = [json.dumps(g) for g in good]
        pieces.insert(5, '{"broken": tru}')
        text = "[" + ",".join(pieces) + "]"
        assert list(iter_json_array(_chunked(text, 11))) == good

    def test_read_error_raised(self):
        with pytest.raises(StreamReadError):
            list(iter_json_array(_failing_stream(["[1, 2,"])))


# ── Callback form ──

class TestParseJsonArrayStream:
    def test_callback_receives_items_and_indices(self):
        seen = []
        result = parse_json_array_stream(
            _chunked(json.dumps(["a", "b", "c"]), 2),
            on_item=lambda item, index: seen.append((index, item)),
        )
        assert seen == [(0, "a"), (1, "b"), (2, "c")]
        assert result.ok
        assert result.completed is True
        assert result.items_parsed == 3

    def test_none_stream_is_input_error(self):
        result = parse_json_array_stream(None, on_item=lambda item, index: None)
        assert isinstance(result.error, StreamInputError)
        assert not result.ok
        assert result.items_parsed == 0

    def test_read_error_reported_with_partial_count(self):
        seen = []
        result = parse_json_array_stream(
            _failing_stream(['[{"id": 1}, {"id": 2}, ']),
            on_item=lambda item, index: seen.append(item),
        )
        assert isinstance(result.error, StreamReadError)
        assert result.items_parsed == 2
        assert seen == [{"id": 1}, {"id": 2}]
        assert result.completed is False

    def test_array_key_passed_through(self):
        seen = []
        parse_json_array_stream(
            ['{"response": {"data": [1, 2]}}'],
            on_item=lambda item, index: seen.append(item),
            array_key="data",
        )
        assert seen == [1, 2]


# ── Whole-buffer fallback ──

class TestParseJsonArrayText:
    def test_bare_array(self):
        assert parse_json_array_text("[1, 2]") == [1, 2]

    def test_envelope_path(self):
        text = json.dumps({"response": {"data": [{"a": 1}]}})
        assert parse_json_array_text(text, ["response", "data"]) == [{"a": 1}]

    def test_missing_path_returns_empty(self):
        assert parse_json_array_text('{"response": {}}', ["response", "data"]) == []

    def test_non_array_returns_empty(self):
        assert parse_json_array_text('{"a": 1}') == []

    def test_invalid_json_raises(self):
        with pytest.raises(ValueError):
            parse_json_array_text("[1, 2")
