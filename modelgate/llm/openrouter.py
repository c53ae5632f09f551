"""
OpenRouter provider implementation.

WHAT: Aggregator backend exposing many vendors' models behind one API key
WHY: Pricing and context metadata per model, one credential for all vendors
HOW: HTTPChatProvider with attribution headers and rich model record parsing
"""

from .http_provider import HTTPChatProvider
from .types import BackendKind, ModelDescriptor, ModelPricing
from ..utils.logger import get_logger

logger = get_logger(__name__)


class OpenRouterProvider(HTTPChatProvider):
    """OpenRouter model-aggregator API."""

    kind = BackendKind.AGGREGATOR
    name = "OpenRouter"

    DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        app_name: str = "modelgate",
        referer: str = "https://github.com/modelgate",
        **kwargs
    ):
        super().__init__(base_url, **kwargs)
        self.app_name = app_name
        self.referer = referer
        logger.info(f"OpenRouter provider initialized (base_url: {self.base_url})")

    def headers(self, credential: str | None) -> dict[str, str]:
        headers = super().headers(credential)
        # Attribution for OpenRouter rankings
        headers["HTTP-Referer"] = self.referer
        headers["X-Title"] = self.app_name
        return headers

    def parse_model(self, record: dict) -> ModelDescriptor:
        pricing = record.get("pricing") or {}
        top_provider = record.get("top_provider") or {}
        architecture = record.get("architecture") or {}

        capabilities = []
        modality = architecture.get("modality")
        if modality:
            capabilities.append(modality)
        for parameter in record.get("supported_parameters") or []:
            capabilities.append(str(parameter))

        vendor = record["id"].split("/", 1)[0] if "/" in record["id"] else None

        return ModelDescriptor(
            id=record["id"],
            display_name=record.get("name") or record["id"],
            context_length=int(record.get("context_length") or 0),
            pricing=ModelPricing(
                prompt=str(pricing.get("prompt") or "0"),
                completion=str(pricing.get("completion") or "0"),
            ),
            capabilities=tuple(capabilities),
            description=record.get("description"),
            vendor=vendor,
            max_completion_tokens=top_provider.get("max_completion_tokens"),
        )
