"""
Shared implementation for OpenAI-compatible HTTP backends.

WHAT: Model discovery and chat completion over GET /models and POST /chat/completions
WHY: Vendor-direct and aggregator APIs speak the same dialect with different metadata
HOW: httpx AsyncClient, status mapping, SSE normalization, cooperative cancellation
"""

from abc import ABC, abstractmethod
from contextlib import aclosing
from typing import AsyncIterator

import httpx

from .cancellation import GenerationHandle
from .streaming_handler import (
    chat_delta_content,
    chat_message_content,
    normalize_json_body,
    normalize_sse_stream,
)
from .types import (
    BackendKind,
    ChatMessage,
    CompletionOptions,
    ConfigurationError,
    FormatError,
    ModelDescriptor,
    NetworkError,
    ProviderTimeoutError,
)
from .wire import build_chat_payload, parse_model_list, raise_for_status
from ..utils.logger import get_logger

logger = get_logger(__name__)


class HTTPChatProvider(ABC):
    """Base class for backends reachable through an OpenAI-style HTTP API."""

    kind: BackendKind = BackendKind.VENDOR
    name: str = "HTTP"
    requires_credential: bool = True

    def __init__(
        self,
        base_url: str,
        *,
        connect_timeout: float = 5.0,
        read_timeout: float = 60.0,
        client: httpx.AsyncClient | None = None
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(connect_timeout, read=read_timeout),
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
            http2=False
        )

    def is_available(self) -> bool:
        return True

    def headers(self, credential: str | None) -> dict[str, str]:
        """Request headers for one call."""
        headers = {"Content-Type": "application/json"}
        if credential:
            headers["Authorization"] = f"Bearer {credential}"
        return headers

    @abstractmethod
    def parse_model(self, record: dict) -> ModelDescriptor:
        """Convert one models-listing record."""

    def extract_delta(self, payload) -> str | None:
        return chat_delta_content(payload)

    def extract_content(self, payload) -> str | None:
        return chat_message_content(payload)

    def _check_credential(self, credential: str | None) -> None:
        if self.requires_credential and not (credential and credential.strip()):
            raise ConfigurationError(f"No {self.name} API key configured")

    async def discover_models(self, credential: str | None) -> list[ModelDescriptor]:
        """
        Fetch the models listing, which doubles as the credential check.

        Returns:
            Model descriptors in the order the backend lists them

        Raises:
            ConfigurationError: No credential configured
            AuthenticationError: Credential rejected (401) or forbidden (403)
            FormatError: Body does not contain a model array
            NetworkError: Transport failure or other HTTP error
        """
        self._check_credential(credential)

        try:
            response = await self.client.get(
                f"{self.base_url}/models",
                headers=self.headers(credential)
            )
        except httpx.TimeoutException as e:
            logger.warning(f"{self.name} model discovery timed out")
            raise ProviderTimeoutError(f"{self.name} request timed out") from e
        except httpx.HTTPError as e:
            logger.warning(f"{self.name} not reachable: {e}")
            raise NetworkError(f"Failed to connect to {self.name} API: {e}") from e

        raise_for_status(response.status_code, response.text, self.name)

        try:
            data = response.json()
        except ValueError as e:
            raise FormatError(f"Invalid response format from {self.name} API") from e

        models = parse_model_list(data, self.parse_model, self.name)
        logger.info(f"{self.name} discovery success ({len(models)} models available)")
        return models

    async def complete(
        self,
        messages: list[ChatMessage],
        *,
        credential: str | None,
        model_id: str | None,
        options: CompletionOptions | None = None,
        cancellation: GenerationHandle | None = None
    ) -> AsyncIterator[str]:
        """
        Stream completion fragments.

        Args:
            messages: Rendered conversation
            credential: API key for this call
            model_id: Model to use
            options: Sampling options; stream=False parses one JSON body
            cancellation: Handle checked between fragments

        Yields:
            Non-empty text fragments

        Raises:
            ConfigurationError: Missing credential or model
            AuthenticationError: Credential rejected
            NetworkError: Transport failure or other HTTP error
            FormatError: Non-streaming body has the wrong shape
        """
        options = options or CompletionOptions()
        self._check_credential(credential)
        if not model_id:
            raise ConfigurationError(f"No {self.name} model selected")

        payload = build_chat_payload(messages, model_id, options)
        logger.debug(f"{self.name} completion (model: {model_id}, stream: {options.stream})")

        count = 0
        try:
            async with self.client.stream(
                "POST",
                f"{self.base_url}/chat/completions",
                json=payload,
                headers=self.headers(credential)
            ) as response:
                if response.status_code != 200:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise_for_status(response.status_code, body, self.name)

                if options.stream:
                    fragments = normalize_sse_stream(
                        response.aiter_bytes(),
                        extract_delta=self.extract_delta
                    )
                    async with aclosing(fragments):
                        async for fragment in fragments:
                            if cancellation is not None and cancellation.cancelled:
                                logger.info(f"{self.name} stream cancelled after {count} fragments")
                                return
                            count += 1
                            yield fragment
                else:
                    body = await response.aread()
                    for fragment in normalize_json_body(body, extract_content=self.extract_content):
                        count += 1
                        yield fragment

        except httpx.TimeoutException as e:
            logger.error(f"{self.name} completion timed out")
            raise ProviderTimeoutError(f"{self.name} request timed out") from e

        except httpx.HTTPError as e:
            logger.error(f"{self.name} transport error during completion: {e}")
            raise NetworkError(f"{self.name} is not reachable: {e}") from e

        logger.info(f"{self.name} completion finished ({count} fragments)")

    async def aclose(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._owns_client:
            await self.client.aclose()
