"""
Incremental parser for large JSON array payloads.

Consumes a stream of text or byte chunks believed to hold one top-level
JSON array and yields each element as soon as it is structurally closed.
Only the text of the element currently being scanned is buffered, so a
multi-hundred-megabyte EIA feed never sits in memory as one string.

The scanner tracks string literals (with one level of backslash escape)
and bracket depth. Elements at depth one inside the array are item
boundaries. An element that fails to decode is logged and skipped; a
stream that ends before the array closes yields whatever was parsed.

Usage:
    for record in iter_json_array(resp.iter_content(65536), array_path=["response", "data"]):
        ...

    result = parse_json_array_stream(chunks, on_item=lambda item, i: ...)
"""

import codecs
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Optional, Sequence, Union

logger = logging.getLogger(__name__)

Chunk = Union[str, bytes]


class StreamError(Exception):
    """Base class for stream-level parse failures."""


class StreamInputError(StreamError):
    """No stream was supplied."""


class StreamReadError(StreamError):
    """The underlying stream could not be read."""


@dataclass
class StreamStats:
    """Running counters for one streaming pass."""
    items_parsed: int = 0
    items_skipped: int = 0
    completed: bool = False  # True once the closing bracket was seen


@dataclass
class StreamParseResult:
    """Outcome of parse_json_array_stream()."""
    items_parsed: int = 0
    items_skipped: int = 0
    completed: bool = False
    error: Optional[StreamError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class _ArrayScanner:
    """Character scanner holding the state that survives chunk boundaries."""

    def __init__(
        self,
        array_key: Optional[str] = None,
        array_path: Optional[Sequence[str]] = None,
    ):
        self.array_key = array_key
        self.array_path = list(array_path) if array_path is not None else None
        self.buffer = ""
        self.pos = 0
        self.item_start = 0
        self.depth = 0
        self.in_array = False
        self.closed = False
        self.in_string = False
        self.escape_next = False
        # Envelope tracking before the array opens: one [bracket, member key]
        # per open container, so the key path to any value is known
        self._string_start: Optional[int] = None
        self._containers: list[list] = []
        self._expect_key = False
        self._awaiting_value = False

    def feed(self, text: str) -> list[str]:
        """Append text and return the raw text of every completed element."""
        if self.closed:
            return []
        self.buffer += text
        items: list[str] = []
        buf = self.buffer
        i = self.pos
        n = len(buf)

        while i < n:
            ch = buf[i]

            if self.in_string:
                if self.escape_next:
                    self.escape_next = False
                elif ch == "\\":
                    self.escape_next = True
                elif ch == '"':
                    self.in_string = False
                    if not self.in_array and self._string_start is not None:
                        self._close_envelope_string(buf[self._string_start + 1:i])
                        self._string_start = None
                i += 1
                continue

            if ch == '"':
                self.in_string = True
                if not self.in_array:
                    self._string_start = i
                i += 1
                continue

            if not self.in_array:
                self._scan_envelope(ch, i)
                i += 1
                continue

            if ch == "{" or ch == "[":
                self.depth += 1
            elif ch == "}":
                self.depth -= 1
                if self.depth == 1:
                    items.append(buf[self.item_start:i + 1])
                    self.item_start = i + 1
            elif ch == "]":
                self.depth -= 1
                if self.depth == 1:
                    items.append(buf[self.item_start:i + 1])
                    self.item_start = i + 1
                elif self.depth == 0:
                    pending = buf[self.item_start:i]
                    if pending.strip():
                        items.append(pending)
                    self.closed = True
                    self.buffer = ""
                    self.pos = 0
                    self.item_start = 0
                    return items
            elif ch == "," and self.depth == 1:
                pending = buf[self.item_start:i]
                if pending.strip():
                    items.append(pending)
                self.item_start = i + 1
            i += 1

        self._trim(i)
        return items

    def _close_envelope_string(self, text: str) -> None:
        top = self._containers[-1] if self._containers else None
        if top is not None and top[0] == "{" and self._expect_key:
            top[1] = text
            self._expect_key = False
        else:
            self._awaiting_value = False

    def _is_target(self) -> bool:
        """True if a "[" seen now is the array to stream."""
        if self.array_path:
            return (
                self._awaiting_value
                and all(bracket == "{" for bracket, _ in self._containers)
                and [key for _, key in self._containers] == self.array_path
            )
        if self.array_key is not None and self.array_path is None:
            return (
                self._awaiting_value
                and bool(self._containers)
                and self._containers[-1] == ["{", self.array_key]
            )
        return True

    def _scan_envelope(self, ch: str, i: int) -> None:
        if ch == ":":
            self._awaiting_value = True
        elif ch == "[":
            if self._is_target():
                self.in_array = True
                self.depth = 1
                self.item_start = i + 1
                self._containers = []
            else:
                self._containers.append(["[", None])
            self._awaiting_value = False
        elif ch == "{":
            self._containers.append(["{", None])
            self._expect_key = True
            self._awaiting_value = False
        elif ch == "}" or ch == "]":
            if self._containers:
                self._containers.pop()
            self._expect_key = False
            self._awaiting_value = False
        elif ch == ",":
            self._expect_key = bool(self._containers) and self._containers[-1][0] == "{"
            self._awaiting_value = False
        elif not ch.isspace():
            self._awaiting_value = False

    def _trim(self, scanned_to: int) -> None:
        """Drop consumed text so the buffer holds only the pending element."""
        if self.in_array:
            cut = self.item_start
        elif self.in_string and self._string_start is not None:
            cut = self._string_start
        else:
            cut = scanned_to
        if cut:
            self.buffer = self.buffer[cut:]
            self.item_start -= cut
            if self._string_start is not None:
                self._string_start -= cut
        self.pos = scanned_to - cut


def _decoded(chunks: Iterable[Chunk], encoding: str) -> Iterator[str]:
    decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
    iterator = iter(chunks)
    while True:
        try:
            chunk = next(iterator)
        except StopIteration:
            break
        except Exception as e:
            raise StreamReadError(f"Failed to read stream: {e}") from e
        if isinstance(chunk, bytes):
            text = decoder.decode(chunk)
        else:
            text = chunk
        if text:
            yield text
    tail = decoder.decode(b"", final=True)
    if tail:
        yield tail


def iter_json_array(
    chunks: Iterable[Chunk],
    array_key: Optional[str] = None,
    stats: Optional[StreamStats] = None,
    encoding: str = "utf-8",
    array_path: Optional[Sequence[str]] = None,
) -> Iterator[Any]:
    """
    Lazily yield the elements of a streamed JSON array in document order.

    Args:
        chunks: Iterable of str or bytes chunks (bytes are decoded
            incrementally, so multi-byte characters may span chunks).
        array_key: If set, open the array that is the value of the first
            object member with this key, at any depth. Otherwise the first
            "[" opens the array.
        array_path: Member keys from the root object to the array, e.g.
            ["response", "data"] for an EIA v2 envelope. Takes precedence
            over ``array_key``; an array under any other path (such as
            request.params.data) is skipped.
        stats: Optional counters updated as items are parsed/skipped.
        encoding: Encoding for byte chunks.

    Raises:
        StreamReadError: if iterating ``chunks`` raises.
    """
    if stats is None:
        stats = StreamStats()
    scanner = _ArrayScanner(array_key=array_key, array_path=array_path)

    for text in _decoded(chunks, encoding):
        for raw in scanner.feed(text):
            try:
                item = json.loads(raw)
            except ValueError as e:
                stats.items_skipped += 1
                logger.warning(
                    f"Skipping malformed array item #{stats.items_parsed + stats.items_skipped}: {e}"
                )
                continue
            stats.items_parsed += 1
            yield item
        if scanner.closed:
            stats.completed = True
            return

    logger.warning(
        f"Stream ended before the array closed; parsed {stats.items_parsed} items"
    )


def parse_json_array_stream(
    stream: Optional[Iterable[Chunk]],
    on_item: Callable[[Any, int], None],
    array_key: Optional[str] = None,
    array_path: Optional[Sequence[str]] = None,
) -> StreamParseResult:
    """
    Callback form of iter_json_array().

    ``on_item(item, index)`` is invoked synchronously for each element in
    order. Stream problems are reported on the result, never raised.
    """
    result = StreamParseResult()
    if stream is None:
        result.error = StreamInputError("No stream available")
        return result

    stats = StreamStats()
    try:
        for item in iter_json_array(
            stream, array_key=array_key, stats=stats, array_path=array_path,
        ):
            on_item(item, stats.items_parsed - 1)
    except StreamReadError as e:
        logger.warning(f"Stream read failed after {stats.items_parsed} items: {e}")
        result.error = e

    result.items_parsed = stats.items_parsed
    result.items_skipped = stats.items_skipped
    result.completed = stats.completed
    return result


def parse_json_array_text(text: str, array_path: Sequence[str] = ()) -> list:
    """
    Whole-buffer fallback: decode ``text`` and walk ``array_path`` to a list.

    Returns [] (with a warning) when the path does not lead to a list.
    """
    data = json.loads(text)
    for key in array_path:
        if not isinstance(data, dict) or key not in data:
            logger.warning(f"Array path {list(array_path)} not found in payload")
            return []
        data = data[key]
    if not isinstance(data, list):
        logger.warning("Payload is not a JSON array")
        return []
    return data
