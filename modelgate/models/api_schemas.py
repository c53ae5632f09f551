"""
Pydantic API schemas for the HTTP surface.

WHAT: Request and response models for FastAPI
WHY: Type-safe validation and serialization of the routing core's values
HOW: Pydantic v2 models with constraints, plus converters from core dataclasses
"""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..llm.types import (
    BackendStatusReport,
    ModelDescriptor,
    ReadinessReport,
    VerifyResult,
)


# ========== Completion ==========

class ContentPartSchema(BaseModel):
    """Typed piece of rich message content."""
    type: str = Field(..., min_length=1, description="'text' or an image MIME type such as 'image/png'")
    text: Optional[str] = Field(None, description="Text for type 'text'")
    base64: Optional[str] = Field(None, description="Base64 payload for image parts")


class MessageSchema(BaseModel):
    """One rendered chat message."""
    role: str = Field(..., min_length=1, description="user, assistant, system (or human/ai)")
    content: Union[str, List[ContentPartSchema]] = Field(..., description="Plain text or content parts")


class CompletionRequest(BaseModel):
    """Request to run a chat completion."""
    messages: List[MessageSchema] = Field(..., min_length=1, description="Conversation to complete")
    provider: Optional[str] = Field(None, description="Backend kind (defaults to the active one)")
    model: Optional[str] = Field(None, description="Overrides the selected model")
    temperature: Optional[float] = Field(None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(None, gt=0)
    stream: bool = Field(default=True, description="Stream fragments as server-sent events")
    exclusive: bool = Field(default=False, description="Abort every in-flight generation first")


class CompletionResponse(BaseModel):
    """Joined completion text for non-streaming requests."""
    text: str
    provider: str


class AbortResponse(BaseModel):
    """Number of generations that were cancelled."""
    cancelled: int


class ProbeResponse(BaseModel):
    """Reply to the probe prompt."""
    success: bool
    provider: str
    response: str


# ========== Backend configuration ==========

class ModelSelectionRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str = Field(..., min_length=1)


class CredentialRequest(BaseModel):
    credential: Optional[str] = Field(None, description="API key; empty or null removes it")


class ActiveBackendRequest(BaseModel):
    provider: str = Field(..., min_length=1)


class ActiveBackendResponse(BaseModel):
    provider: str


# ========== Status ==========

class ModelPricingSchema(BaseModel):
    prompt: str
    completion: str


class ModelSchema(BaseModel):
    """Model offered by a backend."""
    id: str
    display_name: str
    context_length: int
    pricing: ModelPricingSchema
    capabilities: List[str]
    description: Optional[str] = None
    vendor: Optional[str] = None
    max_completion_tokens: Optional[int] = None

    @classmethod
    def from_descriptor(cls, model: ModelDescriptor) -> "ModelSchema":
        return cls(
            id=model.id,
            display_name=model.display_name,
            context_length=model.context_length,
            pricing=ModelPricingSchema(prompt=model.pricing.prompt, completion=model.pricing.completion),
            capabilities=list(model.capabilities),
            description=model.description,
            vendor=model.vendor,
            max_completion_tokens=model.max_completion_tokens,
        )


class ModelListResponse(BaseModel):
    provider: str
    models: List[ModelSchema]
    from_cache: bool
    error: Optional[str] = None


class VerifyResponse(BaseModel):
    """Outcome of a verification."""
    model_config = ConfigDict(protected_namespaces=())

    provider: str
    authenticated: bool
    model_count: int
    from_cache: bool
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @classmethod
    def from_result(cls, provider: str, result: VerifyResult) -> "VerifyResponse":
        return cls(
            provider=provider,
            authenticated=result.authenticated,
            model_count=len(result.models),
            from_cache=result.from_cache,
            error=result.error,
            error_kind=result.error_kind.value if result.error_kind else None,
        )


class ReadinessResponse(BaseModel):
    provider: str
    is_ready: bool
    needs_credential: bool
    needs_authentication: bool
    needs_model_selection: bool
    skipped_network_check: bool
    is_available: bool

    @classmethod
    def from_report(cls, provider: str, report: ReadinessReport) -> "ReadinessResponse":
        return cls(
            provider=provider,
            is_ready=report.is_ready,
            needs_credential=report.needs_credential,
            needs_authentication=report.needs_authentication,
            needs_model_selection=report.needs_model_selection,
            skipped_network_check=report.skipped_network_check,
            is_available=report.is_available,
        )


class StatusResponse(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    provider: str
    auth_status: str
    credential_configured: bool
    model_count: int
    selected_model: Optional[str] = None
    selected_model_name: Optional[str] = None
    is_available: bool
    active: bool
    next_actions: List[str]

    @classmethod
    def from_report(cls, report: BackendStatusReport, active: bool) -> "StatusResponse":
        return cls(
            provider=report.kind.value,
            auth_status=report.auth_status.value,
            credential_configured=report.credential_configured,
            model_count=report.model_count,
            selected_model=report.selected_model,
            selected_model_name=report.selected_model_name,
            is_available=report.is_available,
            active=active,
            next_actions=list(report.next_actions),
        )
