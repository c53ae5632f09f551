"""
Backend status and configuration endpoints.

WHAT: Health, per-backend status/readiness/verification, and configuration writes
WHY: Frontends check readiness and walk users through setup before completing
HOW: Thin FastAPI handlers over the shared ProviderRouter
"""

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_router, parse_kind
from ....core.config import settings
from ....llm.router import ProviderRouter
from ....models.api_schemas import (
    ActiveBackendRequest,
    ActiveBackendResponse,
    CredentialRequest,
    ModelListResponse,
    ModelSchema,
    ModelSelectionRequest,
    ReadinessResponse,
    StatusResponse,
    VerifyResponse,
)
from ....utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(llm: ProviderRouter = Depends(get_router)):
    """
    Overall application health check.

    WHAT: Active backend, its availability, and app metadata
    WHY: Ops and monitoring tools need a simple health endpoint
    HOW: No network calls; reports cached state only
    """
    active = llm.resolve_kind()
    report = llm.status(active)
    healthy = report.is_available

    return {
        "status": "healthy" if healthy else "degraded",
        "version": settings.APP_VERSION,
        "app_name": settings.APP_NAME,
        "components": {
            "llm": {
                "provider": active.value,
                "available": report.is_available,
                "auth_status": report.auth_status.value,
                "in_flight": len(llm.registry),
            }
        }
    }


@router.get("/llm/{kind}/status", response_model=StatusResponse)
async def backend_status(kind: str, llm: ProviderRouter = Depends(get_router)):
    """Summary of one backend with suggested next setup steps."""
    resolved = parse_kind(kind)
    return StatusResponse.from_report(llm.status(resolved), active=resolved == llm.resolve_kind())


@router.get("/llm/{kind}/readiness", response_model=ReadinessResponse)
async def backend_readiness(kind: str, llm: ProviderRouter = Depends(get_router)):
    """
    Check whether a backend can serve completions.

    WHAT: Credential, authentication, and model-selection requirements
    WHY: Avoid starting a completion that cannot succeed
    HOW: ReadinessEvaluator; at most one verification call
    """
    resolved = parse_kind(kind)
    report = await llm.check_readiness(resolved)
    return ReadinessResponse.from_report(resolved.value, report)


@router.post("/llm/{kind}/verify", response_model=VerifyResponse)
async def verify_backend(
    kind: str,
    force: bool = Query(False, description="Bypass the credential cache"),
    llm: ProviderRouter = Depends(get_router)
):
    """Verify the credential and discover models (200 even when verification fails)."""
    resolved = parse_kind(kind)
    result = await llm.verify(resolved, force_refresh=force)
    return VerifyResponse.from_result(resolved.value, result)


@router.delete("/llm/{kind}/cache", status_code=204)
async def clear_backend_cache(kind: str, llm: ProviderRouter = Depends(get_router)):
    await llm.clear_cache(parse_kind(kind))


@router.get("/llm/{kind}/models", response_model=ModelListResponse)
async def list_models(kind: str, llm: ProviderRouter = Depends(get_router)):
    """Models offered by a backend, served from the cache when fresh."""
    resolved = parse_kind(kind)
    result = await llm.verify(resolved)
    return ModelListResponse(
        provider=resolved.value,
        models=[ModelSchema.from_descriptor(model) for model in result.models],
        from_cache=result.from_cache,
        error=result.error,
    )


@router.put("/llm/{kind}/model", response_model=StatusResponse)
async def select_model(
    kind: str,
    request: ModelSelectionRequest,
    llm: ProviderRouter = Depends(get_router)
):
    resolved = parse_kind(kind)
    await llm.select_model(resolved, request.model_id)
    return StatusResponse.from_report(llm.status(resolved), active=resolved == llm.resolve_kind())


@router.put("/llm/{kind}/credential", response_model=StatusResponse)
async def set_credential(
    kind: str,
    request: CredentialRequest,
    llm: ProviderRouter = Depends(get_router)
):
    """Store (or remove) the API key; the backend is re-verified on next use."""
    resolved = parse_kind(kind)
    await llm.set_credential(resolved, (request.credential or "").strip() or None)
    return StatusResponse.from_report(llm.status(resolved), active=resolved == llm.resolve_kind())


@router.put("/llm/active", response_model=ActiveBackendResponse)
async def set_active_backend(request: ActiveBackendRequest, llm: ProviderRouter = Depends(get_router)):
    resolved = await llm.set_active_kind(parse_kind(request.provider))
    logger.info(f"Active backend switched to {resolved.value}")
    return ActiveBackendResponse(provider=resolved.value)
