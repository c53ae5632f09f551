"""
Streaming normalization for LLM responses.

WHAT: Turn backend response bodies into a uniform sequence of text fragments
WHY: Hide SSE framing, arbitrary transport chunking and non-streaming bodies
HOW: Incremental line buffer over decoded bytes, per-line SSE frame parsing
"""

import codecs
import json
from typing import Any, AsyncIterator, Callable, Iterable

from .types import FormatError
from ..utils.logger import get_logger

logger = get_logger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"

DeltaExtractor = Callable[[Any], str | None]


def chat_delta_content(payload: Any) -> str | None:
    """Incremental text of an OpenAI-style streaming frame."""
    try:
        return payload["choices"][0]["delta"].get("content")
    except (KeyError, IndexError, TypeError, AttributeError):
        return None


def chat_message_content(payload: Any) -> str | None:
    """Completion text of an OpenAI-style non-streaming body."""
    try:
        return payload["choices"][0]["message"].get("content")
    except (KeyError, IndexError, TypeError, AttributeError):
        return None


class SSEStreamNormalizer:
    """
    Incremental server-sent-event parser.

    Feed raw byte (or text) chunks with ``feed``; each call returns the
    fragments completed by that chunk. Call ``close`` once the body ends to
    flush a final unterminated line. After the ``[DONE]`` sentinel ``done``
    is True and further input is ignored.
    """

    def __init__(self, extract_delta: DeltaExtractor = chat_delta_content):
        self._extract_delta = extract_delta
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.done = False
        self.skipped_frames = 0

    def feed(self, chunk: bytes | str) -> list[str]:
        if self.done:
            return []
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        self._buffer += chunk

        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return self._process_lines(lines)

    def close(self) -> list[str]:
        if self.done:
            return []
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        fragments = self._process_lines(tail.split("\n"))
        self.done = True
        return fragments

    def _process_lines(self, lines: Iterable[str]) -> list[str]:
        fragments = []
        for line in lines:
            fragment = self._process_line(line.rstrip("\r"))
            if self.done:
                break
            if fragment:
                fragments.append(fragment)
        return fragments

    def _process_line(self, line: str) -> str | None:
        if not line.startswith(DATA_PREFIX):
            return None

        data = line[len(DATA_PREFIX):]
        if data.startswith(" "):
            data = data[1:]

        if data.strip() == DONE_SENTINEL:
            self.done = True
            return None

        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            self.skipped_frames += 1
            logger.debug(f"Skipping malformed SSE frame: {line[:100]}")
            return None

        delta = self._extract_delta(payload)
        if isinstance(delta, str) and delta:
            return delta
        return None


async def normalize_sse_stream(
    chunks: AsyncIterator[bytes | str],
    *,
    extract_delta: DeltaExtractor = chat_delta_content
) -> AsyncIterator[str]:
    """
    Yield text fragments from an arbitrarily-chunked SSE body.

    Args:
        chunks: Raw body chunks as they arrive from the transport
        extract_delta: Provider-specific path to the incremental text

    Yields:
        Non-empty text fragments in the order the backend produced them
    """
    normalizer = SSEStreamNormalizer(extract_delta)
    async for chunk in chunks:
        for fragment in normalizer.feed(chunk):
            yield fragment
        if normalizer.done:
            break
    for fragment in normalizer.close():
        yield fragment

    if normalizer.skipped_frames:
        logger.warning(f"SSE stream finished with {normalizer.skipped_frames} malformed frame(s) skipped")


def normalize_json_body(
    body: bytes | str,
    *,
    extract_content: DeltaExtractor = chat_message_content
) -> list[str]:
    """
    Parse a complete non-streaming body into at most one fragment.

    Raises:
        FormatError: Body is not JSON or lacks a completion
    """
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise FormatError(f"Invalid response format: {e}") from e

    if not isinstance(payload, dict) or not isinstance(payload.get("choices"), list):
        raise FormatError("Invalid response format: missing 'choices'")

    content = extract_content(payload)
    return [content] if isinstance(content, str) and content else []


async def iterate_fragments(fragments: Iterable[str]) -> AsyncIterator[str]:
    """Expose an already-materialized fragment list as a stream."""
    for fragment in fragments:
        yield fragment
