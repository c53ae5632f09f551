"""
Unit tests for stream normalization.

WHAT: SSE framing, chunk-boundary insensitivity, [DONE], malformed frames, JSON bodies
WHY: Every backend's output funnels through these parsers
HOW: Feed byte streams split in different ways and compare fragments
"""

import json

import pytest

from modelgate.llm.streaming_handler import (
    SSEStreamNormalizer,
    iterate_fragments,
    normalize_json_body,
    normalize_sse_stream,
)
from modelgate.llm.types import FormatError
from tests.conftest import MOCK_COMPLETION_RESPONSE, MOCK_STREAMING_CHUNKS


def frame(content: str) -> str:
    return "data: " + json.dumps({"choices": [{"delta": {"content": content}}]}, ensure_ascii=False) + "\n"


async def chunk_stream(chunks):
    for chunk in chunks:
        yield chunk


async def collect(chunks, **kwargs) -> list[str]:
    return [fragment async for fragment in normalize_sse_stream(chunk_stream(chunks), **kwargs)]


@pytest.mark.unit
class TestSSEStreamNormalizer:

    @pytest.mark.asyncio
    async def test_hello_world_then_done(self):
        body = (
            'data: {"choices":[{"delta":{"content":"Hello"}}]}\n'
            'data: {"choices":[{"delta":{"content":" world"}}]}\n'
            'data: [DONE]\n'
        ).encode()

        assert await collect([body]) == ["Hello", " world"]

    @pytest.mark.asyncio
    async def test_any_split_yields_same_fragments(self):
        body = "".join([frame("Hel"), frame("lo, "), "\n", frame("wörld 🌍"), "data: [DONE]\n"]).encode("utf-8")
        expected = ["Hel", "lo, ", "wörld 🌍"]

        for offset in range(len(body) + 1):
            assert await collect([body[:offset], body[offset:]]) == expected

    @pytest.mark.asyncio
    async def test_byte_at_a_time(self):
        body = b"".join(MOCK_STREAMING_CHUNKS)

        assert await collect([body[i:i + 1] for i in range(len(body))]) == ["Hello", " ", "world"]

    @pytest.mark.asyncio
    async def test_crlf_line_endings(self):
        body = frame("a").replace("\n", "\r\n") + frame("b").replace("\n", "\r\n")

        assert await collect([body.encode()]) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_prefix_without_space(self):
        body = 'data:{"choices":[{"delta":{"content":"tight"}}]}\n'

        assert await collect([body]) == ["tight"]

    @pytest.mark.asyncio
    async def test_non_data_lines_are_ignored(self):
        body = ": keep-alive\nevent: message\nid: 7\n" + frame("ok")

        assert await collect([body]) == ["ok"]

    @pytest.mark.asyncio
    async def test_malformed_frame_is_skipped(self):
        normalizer = SSEStreamNormalizer()

        fragments = normalizer.feed(frame("one") + "data: {not json\n" + frame("two"))

        assert fragments == ["one", "two"]
        assert normalizer.skipped_frames == 1

    @pytest.mark.asyncio
    async def test_input_after_done_is_ignored(self):
        body = frame("before") + "data: [DONE]\n" + frame("after")

        assert await collect([body]) == ["before"]

    @pytest.mark.asyncio
    async def test_trailing_line_without_newline_is_processed(self):
        body = frame("first") + 'data: {"choices":[{"delta":{"content":"last"}}]}'

        assert await collect([body]) == ["first", "last"]

    @pytest.mark.asyncio
    async def test_empty_and_missing_deltas_are_dropped(self):
        body = (
            frame("")
            + 'data: {"choices":[{"delta":{"role":"assistant"}}]}\n'
            + 'data: {"choices":[]}\n'
            + frame("x")
        )

        assert await collect([body]) == ["x"]

    @pytest.mark.asyncio
    async def test_custom_extractor(self):
        body = 'data: {"token": {"text": "custom"}}\n'

        fragments = await collect([body], extract_delta=lambda payload: payload["token"]["text"])

        assert fragments == ["custom"]

    def test_multibyte_character_split_across_chunks(self):
        normalizer = SSEStreamNormalizer()
        encoded = frame("é").encode("utf-8")
        split = encoded.index("é".encode("utf-8")) + 1

        assert normalizer.feed(encoded[:split]) == []
        assert normalizer.feed(encoded[split:]) == ["é"]

    def test_close_with_truncated_frame(self):
        normalizer = SSEStreamNormalizer()

        assert normalizer.feed(b'data: {"choices"') == []
        assert normalizer.close() == []
        assert normalizer.skipped_frames == 1
        assert normalizer.done is True


@pytest.mark.unit
class TestNormalizeJsonBody:

    def test_single_fragment(self):
        assert normalize_json_body(json.dumps(MOCK_COMPLETION_RESPONSE)) == ["Test response"]

    def test_empty_content_yields_nothing(self):
        body = json.dumps({"choices": [{"message": {"content": ""}}]})

        assert normalize_json_body(body) == []

    def test_invalid_json_raises_format_error(self):
        with pytest.raises(FormatError, match="Invalid response format"):
            normalize_json_body(b"<html>gateway</html>")

    def test_missing_choices_raises_format_error(self):
        with pytest.raises(FormatError, match="choices"):
            normalize_json_body(json.dumps({"error": "nope"}))

    @pytest.mark.asyncio
    async def test_iterate_fragments(self):
        fragments = [f async for f in iterate_fragments(["a", "b"])]

        assert fragments == ["a", "b"]
