"""Tests for the JSONL result parser."""

import io

import pytest

from shopify_bulk.services.jsonl_parser import dumps_jsonl, parse_jsonl
from shopify_bulk.utils.error_handler import ErrorCode, JsonlParseException

RECORDS = [
    {"id": "gid://shopify/Product/1", "title": "Café con leche ☕", "tags": ["a", "b"]},
    {"id": "gid://shopify/ProductVariant/11", "__parentId": "gid://shopify/Product/1", "price": "10.00"},
    {"nested": {"list": [1, 2.5, None, True]}, "multiline": "line one\nline two"},
    [1, 2, 3],
    "plain string",
    42,
    None,
]


async def agen(chunks):
    for chunk in chunks:
        yield chunk


def split_every(data, size):
    return [data[i : i + size] for i in range(0, len(data), size)]


class TestParseJsonl:
    """Tests for parse_jsonl."""

    @pytest.mark.asyncio
    async def test_round_trip_preserves_records_and_order(self):
        """Should return the serialized records in order."""
        assert await parse_jsonl(dumps_jsonl(RECORDS)) == RECORDS

    @pytest.mark.asyncio
    async def test_parsing_is_idempotent(self):
        """Should yield equal results when parsing the same text twice."""
        text = dumps_jsonl(RECORDS)

        first = await parse_jsonl(text)
        second = await parse_jsonl(text)

        assert first == second

    @pytest.mark.asyncio
    async def test_empty_input_yields_no_records(self):
        """Should return an empty list for empty text, bytes or streams."""
        assert await parse_jsonl("") == []
        assert await parse_jsonl(b"") == []
        assert await parse_jsonl([]) == []
        assert await parse_jsonl(agen([])) == []

    @pytest.mark.asyncio
    async def test_blank_lines_are_skipped(self):
        """Should ignore empty and whitespace-only lines."""
        text = '\n{"a": 1}\n\n   \n{"b": 2}\n\n'

        assert await parse_jsonl(text) == [{"a": 1}, {"b": 2}]

    @pytest.mark.asyncio
    async def test_last_line_without_newline(self):
        """Should parse a final line with no trailing newline."""
        assert await parse_jsonl('{"a": 1}\n{"b": 2}') == [{"a": 1}, {"b": 2}]

    @pytest.mark.asyncio
    async def test_crlf_line_endings(self):
        """Should accept Windows line endings."""
        assert await parse_jsonl(b'{"a": 1}\r\n{"b": 2}\r\n') == [{"a": 1}, {"b": 2}]

    @pytest.mark.asyncio
    async def test_chunks_split_mid_line_and_mid_character(self):
        """Should reassemble lines and multi-byte characters cut across chunks."""
        data = dumps_jsonl(RECORDS).encode("utf-8")

        assert await parse_jsonl(split_every(data, 1)) == RECORDS
        assert await parse_jsonl(agen(split_every(data, 7))) == RECORDS

    @pytest.mark.asyncio
    async def test_same_result_for_every_source_shape(self):
        """Should not depend on how the input is delivered."""
        text = dumps_jsonl(RECORDS)

        results = [
            await parse_jsonl(text),
            await parse_jsonl(text.encode("utf-8")),
            await parse_jsonl(split_every(text, 5)),
            await parse_jsonl(agen([text.encode("utf-8")])),
            await parse_jsonl(io.BytesIO(text.encode("utf-8"))),
        ]

        assert all(result == RECORDS for result in results)


class TestParseErrors:
    """Tests for malformed input."""

    @pytest.mark.asyncio
    async def test_malformed_line_reports_its_number(self):
        """Should fail on the malformed line and return nothing."""
        text = '{"a": 1}\n{"b": 2}\n{"c": \n{"d": 4}\n'

        with pytest.raises(JsonlParseException) as exc_info:
            await parse_jsonl(text)

        assert exc_info.value.line_number == 3
        assert exc_info.value.raw_line == '{"c": '
        assert exc_info.value.error_code == ErrorCode.JSONL_PARSE_ERROR
        assert exc_info.value.details["line_number"] == 3

    @pytest.mark.asyncio
    async def test_line_numbers_count_blank_lines(self):
        """Should count skipped blank lines when numbering."""
        with pytest.raises(JsonlParseException) as exc_info:
            await parse_jsonl('\n{"a": 1}\n\n   \nnot json\n')

        assert exc_info.value.line_number == 5

    @pytest.mark.asyncio
    async def test_async_source_is_closed_on_error(self):
        """Should close the stream before the parse error propagates."""
        closed = []

        async def download():
            try:
                yield b'{"a": 1}\n'
                yield b"oops\n"
                yield b'{"b": 2}\n'
            finally:
                closed.append(True)

        with pytest.raises(JsonlParseException) as exc_info:
            await parse_jsonl(download())

        assert exc_info.value.line_number == 2
        assert closed == [True]

    @pytest.mark.asyncio
    async def test_sync_source_is_closed(self):
        """Should close a file-like source after reading it."""
        source = io.BytesIO(b'{"a": 1}\n')

        assert await parse_jsonl(source) == [{"a": 1}]
        assert source.closed

    @pytest.mark.asyncio
    async def test_invalid_utf8_in_stream_is_a_parse_error(self):
        """Should report the line holding invalid UTF-8 and close the stream."""
        closed = []

        async def download():
            try:
                yield b'{"a": 1}\n{"b": "\xff\xfe"}\n'
                yield b'{"c": 3}\n'
            finally:
                closed.append(True)

        with pytest.raises(JsonlParseException) as exc_info:
            await parse_jsonl(download())

        assert exc_info.value.line_number == 2
        assert exc_info.value.error_code == ErrorCode.JSONL_PARSE_ERROR
        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)
        assert closed == [True]

    @pytest.mark.asyncio
    async def test_invalid_utf8_in_bytes_is_a_parse_error(self):
        """Should raise JsonlParseException rather than UnicodeDecodeError for whole bytes."""
        with pytest.raises(JsonlParseException) as exc_info:
            await parse_jsonl(b'{"a": 1}\n{"b": "\xff\xfe"}\n')

        assert exc_info.value.line_number == 2
        assert exc_info.value.raw_line.startswith('{"b": "')

    @pytest.mark.asyncio
    async def test_invalid_utf8_split_across_chunks(self):
        """Should number the line correctly when the bad bytes start a later chunk."""
        with pytest.raises(JsonlParseException) as exc_info:
            await parse_jsonl(agen([b'{"a": 1}\n{"b": "x', b'\xff"}\n']))

        assert exc_info.value.line_number == 2
        assert exc_info.value.raw_line.startswith('{"b": "x')

    @pytest.mark.asyncio
    async def test_truncated_character_at_end_of_input(self):
        """Should fail on the last line when the input ends mid-character."""
        with pytest.raises(JsonlParseException) as exc_info:
            await parse_jsonl(agen([b'{"a": 1}\n', b'"\xe2\x82']))

        assert exc_info.value.line_number == 2

    @pytest.mark.asyncio
    async def test_earlier_malformed_line_wins_over_later_bad_bytes(self):
        """Should report the first malformed line even when bad bytes follow in the same chunk."""
        with pytest.raises(JsonlParseException) as exc_info:
            await parse_jsonl(b'not json\n{"b": "\xff"}\n')

        assert exc_info.value.line_number == 1
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert not isinstance(exc_info.value.__cause__, UnicodeDecodeError)


class TestDumpsJsonl:
    """Tests for dumps_jsonl."""

    def test_one_record_per_line(self):
        """Should write one compact JSON document per line."""
        assert dumps_jsonl([{"a": 1}, [2]]) == '{"a": 1}\n[2]\n'

    def test_embedded_newlines_are_escaped(self):
        """Should keep string newlines inside their line."""
        assert dumps_jsonl(["x\ny"]).count("\n") == 1

    def test_empty(self):
        assert dumps_jsonl([]) == ""
