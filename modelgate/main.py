"""
FastAPI application entry point.

WHAT: Main application setup and wiring
WHY: Expose the provider router over HTTP
HOW: Create FastAPI app, register middleware, routers, handlers
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.v1.router import api_router
from .core.config import settings
from .llm.provider_factory import create_router
from .middleware.error_handler import register_exception_handlers
from .utils.logger import get_logger, setup_logging

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    WHAT: Startup and shutdown logic
    WHY: One router (and one credential cache) per process, closed cleanly
    HOW: Build the router unless one was attached beforehand, close it on exit
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    if getattr(app.state, "router", None) is None:
        app.state.router = create_router(settings)
    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application")
    await app.state.router.aclose()
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "status": "running"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "modelgate.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
