"""
Vendor-direct provider implementation.

WHAT: Chat completions straight against a vendor's OpenAI-compatible API
WHY: Use a vendor account without going through an aggregator
HOW: HTTPChatProvider with bearer auth and optional organization header
"""

from .http_provider import HTTPChatProvider
from .types import BackendKind, ModelDescriptor
from ..utils.logger import get_logger

logger = get_logger(__name__)


class OpenAIProvider(HTTPChatProvider):
    """OpenAI (or compatible) chat API."""

    kind = BackendKind.VENDOR
    name = "OpenAI"

    DEFAULT_BASE_URL = "https://api.openai.com/v1"

    def __init__(self, base_url: str = DEFAULT_BASE_URL, *, organization: str | None = None, **kwargs):
        super().__init__(base_url, **kwargs)
        self.organization = organization
        logger.info(f"OpenAI provider initialized (base_url: {self.base_url})")

    def headers(self, credential: str | None) -> dict[str, str]:
        headers = super().headers(credential)
        if self.organization:
            headers["OpenAI-Organization"] = self.organization
        return headers

    def parse_model(self, record: dict) -> ModelDescriptor:
        owner = record.get("owned_by")
        return ModelDescriptor(
            id=record["id"],
            display_name=record.get("name") or record["id"],
            context_length=int(record.get("context_length") or record.get("context_window") or 0),
            capabilities=("chat",),
            vendor=owner,
        )
