"""
Wire-format helpers for OpenAI-compatible chat APIs.

WHAT: Message conversion, request payloads, status mapping, model list parsing
WHY: Vendor-direct and aggregator backends share one HTTP dialect
HOW: Pure functions raising the provider exception taxonomy
"""

from typing import Any, Callable

from .types import (
    AuthenticationError,
    ChatMessage,
    CompletionOptions,
    ConfigurationError,
    ContentPart,
    FormatError,
    ModelDescriptor,
    NetworkError,
    SpeakerRole,
)
from ..utils.logger import get_logger, mask_secret

logger = get_logger(__name__)

# Speaker names used by prompt renderers that predate SpeakerRole
_ROLE_ALIASES = {
    "human": SpeakerRole.USER,
    "ai": SpeakerRole.ASSISTANT,
}


def to_speaker_role(role: SpeakerRole | str) -> SpeakerRole:
    """Map any speaker value to a SpeakerRole, defaulting to user."""
    if isinstance(role, SpeakerRole):
        return role
    if role in _ROLE_ALIASES:
        return _ROLE_ALIASES[role]
    try:
        return SpeakerRole(role)
    except ValueError:
        logger.debug(f"Unknown speaker role {role!r}, sending as user")
        return SpeakerRole.USER


def to_wire_content(content: Any) -> str | list[dict]:
    """Convert message content to the chat-completions content field."""
    if isinstance(content, str):
        return content

    parts = []
    for part in content:
        if isinstance(part, str):
            parts.append({"type": "text", "text": part})
        elif isinstance(part, ContentPart) and part.type == "text":
            parts.append({"type": "text", "text": part.text or ""})
        elif isinstance(part, ContentPart) and part.type.startswith("image/"):
            parts.append({
                "type": "image_url",
                "image_url": {"url": f"data:{part.type};base64,{part.base64 or ''}"}
            })
        else:
            part_type = getattr(part, "type", type(part).__name__)
            raise ConfigurationError(f"Unsupported content type: {part_type}")
    return parts


def to_wire_messages(messages: list[ChatMessage]) -> list[dict]:
    return [
        {"role": to_speaker_role(message.role).value, "content": to_wire_content(message.content)}
        for message in messages
    ]


def build_chat_payload(
    messages: list[ChatMessage],
    model_id: str,
    options: CompletionOptions
) -> dict:
    """Request body for POST /chat/completions."""
    payload = {
        "model": model_id,
        "messages": to_wire_messages(messages),
        "stream": options.stream,
    }
    if options.temperature is not None:
        payload["temperature"] = options.temperature
    if options.max_tokens:
        payload["max_tokens"] = options.max_tokens
    return payload


def raise_for_status(status_code: int, body: str, backend_name: str) -> None:
    """
    Translate a non-200 response into the provider exception taxonomy.

    Raises:
        AuthenticationError: 401 (invalid credential) or 403 (forbidden)
        NetworkError: Any other non-200 status
    """
    if status_code == 200:
        return
    if status_code == 401:
        raise AuthenticationError(
            f"Invalid API key. Please check your {backend_name} API key.",
            reason=AuthenticationError.INVALID_CREDENTIAL
        )
    if status_code == 403:
        raise AuthenticationError(
            f"Access forbidden. Please check your {backend_name} account status.",
            reason=AuthenticationError.FORBIDDEN
        )
    raise NetworkError(
        f"{backend_name} API error ({status_code}): {body}",
        status_code=status_code,
        body=body
    )


def parse_model_list(
    data: Any,
    parse_record: Callable[[dict], ModelDescriptor],
    backend_name: str
) -> list[ModelDescriptor]:
    """
    Parse a models-listing body ({"data": [{"id": ...}, ...]}).

    Records without an id are skipped; duplicate ids keep the first record.

    Raises:
        FormatError: Body is not an object with a "data" array
    """
    if not isinstance(data, dict) or not isinstance(data.get("data"), list):
        raise FormatError(f"Invalid response format from {backend_name} API")

    models: list[ModelDescriptor] = []
    seen: set[str] = set()
    for record in data["data"]:
        if not isinstance(record, dict) or not record.get("id"):
            logger.warning(f"Skipping {backend_name} model record without id")
            continue
        try:
            model = parse_record(record)
        except (TypeError, ValueError) as e:
            raise FormatError(f"Invalid model record from {backend_name} API: {e}") from e
        if model.id in seen:
            continue
        seen.add(model.id)
        models.append(model)
    return models
