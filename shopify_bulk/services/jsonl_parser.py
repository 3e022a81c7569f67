"""
JSON Lines parsing for bulk operation results.

Bulk results arrive as one JSON document per line. The parser accepts the
whole text at once or a stream of chunks (for example a download in
progress), and fails on the first malformed line.
"""

import codecs
import json
import logging
from typing import Any, AsyncIterable, Iterable, List, Optional, Union

from shopify_bulk.utils.error_handler import JsonlParseException

logger = logging.getLogger(__name__)

Chunk = Union[str, bytes, bytearray]
JsonlSource = Union[Chunk, Iterable[Chunk], AsyncIterable[Chunk]]


class _LineSplitter:
    """
    Reassembles lines from arbitrarily cut chunks.

    Invalid UTF-8 does not raise from feed(): the complete lines before it
    are still handed back, and the error is kept in `pending` so it is
    reported after them.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")()
        self._buffer = ""
        self._lines_seen = 0
        self.pending: Optional[JsonlParseException] = None

    def _decode(self, data: bytes, final: bool = False) -> str:
        try:
            return self._decoder.decode(data, final=final)
        except UnicodeDecodeError as e:
            # e.object is the decoder carry-over followed by `data`
            valid = e.object[: e.start].decode("utf-8")
            line_number = self._lines_seen + (self._buffer + valid).count("\n") + 1
            bad_line = (self._buffer + valid).rsplit("\n", 1)[-1] + e.object[e.start :].split(b"\n", 1)[0].decode(
                "utf-8", "replace"
            )
            self.pending = JsonlParseException(
                line_number=line_number, raw_line=bad_line, reason=f"invalid UTF-8: {e.reason}"
            )
            self.pending.__cause__ = e
            return valid

    def _split(self) -> List[str]:
        *lines, self._buffer = self._buffer.split("\n")
        self._lines_seen += len(lines)
        return lines

    def feed(self, chunk: Chunk) -> List[str]:
        if isinstance(chunk, (bytes, bytearray)):
            chunk = self._decode(bytes(chunk))
        self._buffer += chunk
        return self._split()

    def finish(self) -> List[str]:
        self._buffer += self._decode(b"", final=True)
        if self.pending is not None:
            return self._split()

        tail, self._buffer = self._buffer, ""
        return [tail] if tail else []


def _decode_line(line: str, line_number: int, records: List[Any]) -> None:
    if line.endswith("\r"):
        line = line[:-1]

    if not line.strip():
        return

    try:
        records.append(json.loads(line))
    except json.JSONDecodeError as e:
        raise JsonlParseException(line_number=line_number, raw_line=line, reason=str(e)) from e


async def _close_source(source: Any) -> None:
    aclose = getattr(source, "aclose", None)
    if aclose is not None:
        await aclose()
        return

    close = getattr(source, "close", None)
    if close is not None:
        close()


async def parse_jsonl(source: JsonlSource) -> List[Any]:
    """
    Parse JSON Lines into a list of records.

    Args:
        source: Whole text (str or bytes), or a sync or async iterable of
            str/bytes chunks that need not align with line boundaries

    Returns:
        List: One decoded value per non-blank line, in line order

    Raises:
        JsonlParseException: On the first line that is not valid UTF-8 or not valid JSON
    """
    splitter = _LineSplitter()
    records: List[Any] = []
    line_number = 0

    def consume(lines: List[str]) -> None:
        nonlocal line_number
        for line in lines:
            line_number += 1
            _decode_line(line, line_number, records)
        if splitter.pending is not None:
            raise splitter.pending

    if isinstance(source, (str, bytes, bytearray)):
        chunks: Any = [source]
        closable = None
    else:
        chunks = source
        closable = source

    try:
        if hasattr(chunks, "__aiter__"):
            async for chunk in chunks:
                consume(splitter.feed(chunk))
        else:
            for chunk in chunks:
                consume(splitter.feed(chunk))

        consume(splitter.finish())
    finally:
        if closable is not None:
            await _close_source(closable)

    logger.debug(f"Parsed {len(records)} records from {line_number} lines")
    return records


def dumps_jsonl(records: Iterable[Any]) -> str:
    """
    Serialize records as JSON Lines, one compact document per line.

    Examples:
        >>> dumps_jsonl([{"id": 1}, [1, 2]])
        '{"id": 1}\\n[1, 2]\\n'
        >>> dumps_jsonl([])
        ''
    """
    return "".join(f"{json.dumps(record, ensure_ascii=False)}\n" for record in records)
