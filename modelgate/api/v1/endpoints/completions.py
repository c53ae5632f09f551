"""
Chat completion endpoints.

WHAT: Run completions (SSE or JSON), abort in-flight generations, probe a backend
WHY: One HTTP entry point regardless of which backend is active
HOW: EventSourceResponse over ProviderRouter.stream fragments
"""

import json
from contextlib import aclosing
from datetime import datetime
from typing import AsyncIterator

from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from ..dependencies import get_router, parse_kind
from ....llm.router import ProviderRouter
from ....llm.types import ChatMessage, CompletionOptions, ContentPart, ProviderError
from ....models.api_schemas import (
    AbortResponse,
    CompletionRequest,
    CompletionResponse,
    MessageSchema,
    ProbeResponse,
)
from ....utils.exceptions import ValidationError
from ....utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


def to_chat_message(message: MessageSchema) -> ChatMessage:
    """Convert a request message to the core ChatMessage."""
    if isinstance(message.content, str):
        return ChatMessage(role=message.role, content=message.content)

    parts = []
    for part in message.content:
        if part.type.startswith("image/") and not part.base64:
            raise ValidationError(f"Image part of type {part.type} has no base64 payload", field="base64")
        parts.append(ContentPart(type=part.type, text=part.text, base64=part.base64))
    return ChatMessage(role=message.role, content=tuple(parts))


async def fragment_event_generator(fragments: AsyncIterator[str], provider: str) -> AsyncIterator[dict]:
    """
    Generate SSE events for one completion.

    Yields:
        ``fragment`` events in order, then ``done``; a single ``error`` event
        replaces ``done`` when the backend fails mid-stream
    """
    count = 0
    try:
        async with aclosing(fragments):
            async for fragment in fragments:
                count += 1
                yield {
                    "event": "fragment",
                    "data": json.dumps({"text": fragment})
                }
    except ProviderError as e:
        logger.error(f"Completion stream failed after {count} fragments: {e.message}")
        yield {
            "event": "error",
            "data": json.dumps({
                "kind": e.kind.value,
                "message": e.message,
                "timestamp": datetime.now().isoformat()
            })
        }
        return

    yield {
        "event": "done",
        "data": json.dumps({
            "provider": provider,
            "fragments": count,
            "timestamp": datetime.now().isoformat()
        })
    }


@router.post("/llm/complete")
async def complete(request: CompletionRequest, llm: ProviderRouter = Depends(get_router)):
    """
    Run a chat completion.

    WHAT: Stream fragments as SSE, or return the joined text as JSON
    WHY: Frontends render tokens live; scripts want one string
    HOW: ProviderRouter.stream; configuration errors surface before streaming starts
    """
    kind = parse_kind(request.provider) if request.provider else llm.resolve_kind()
    messages = [to_chat_message(message) for message in request.messages]
    options = CompletionOptions(
        temperature=request.temperature if request.temperature is not None else llm.default_options.temperature,
        max_tokens=request.max_tokens or llm.default_options.max_tokens,
        stream=request.stream,
    )

    fragments = llm.stream(
        messages,
        kind=kind,
        model_id=request.model,
        options=options,
        exclusive=request.exclusive,
    )

    if request.stream:
        return EventSourceResponse(fragment_event_generator(fragments, kind.value))

    text = "".join([fragment async for fragment in fragments])
    return CompletionResponse(text=text, provider=kind.value)


@router.post("/llm/abort", response_model=AbortResponse)
async def abort_all(llm: ProviderRouter = Depends(get_router)):
    """Cancel every in-flight generation."""
    return AbortResponse(cancelled=llm.abort_all())


@router.post("/llm/{kind}/test", response_model=ProbeResponse)
async def test_configuration(kind: str, llm: ProviderRouter = Depends(get_router)):
    """Send a short probe prompt through the backend."""
    resolved = parse_kind(kind)
    text = await llm.test_configuration(resolved)
    logger.info(f"{resolved.value} probe succeeded ({len(text)} chars)")
    return ProbeResponse(success=True, provider=resolved.value, response=text)
