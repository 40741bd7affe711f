"""Main FastAPI application."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app import __version__
from app.api.dependencies import ClientRateLimiter
from app.api.endpoints import router
from app.config import get_settings
from app.factory import build_components, build_session_registry
from app.services.session_manager import SessionRegistry
from app.utils.logging import LogConfig, get_logger, setup_logging

logger = get_logger(__name__)


def create_app(
    session_registry: SessionRegistry | None = None,
    rate_limiter: ClientRateLimiter | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        session_registry: Prebuilt registry; when omitted, one is wired from settings at startup
        rate_limiter: Chat rate limiter; when omitted, one is built from settings at startup

    Returns:
        Configured application (not yet serving)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        components = None
        registry = session_registry

        if registry is None:
            settings = get_settings()
            setup_logging(LogConfig(level=settings.log_level))
            components = build_components(settings)
            registry = build_session_registry(settings, components)
            app.state.chat_rate_limiter = rate_limiter or ClientRateLimiter(settings.chat_rate_limit)
            logger.info(f"Serving Fliplet app {settings.fliplet_app_id} with model {settings.model}")
        else:
            app.state.chat_rate_limiter = rate_limiter

        app.state.session_registry = registry
        await registry.start_cleanup()
        try:
            yield
        finally:
            await registry.stop_cleanup()
            if components is not None:
                await components.aclose()
            logger.info("Shutdown complete")

    app = FastAPI(
        title="Fliplet App Assistant",
        description=(
            "Ask natural-language questions about a Fliplet app's data sources and media files. "
            "Answers are grounded in live Fliplet REST API data."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=[
            {
                "name": "Conversation",
                "description": "Chat with the assistant and reset conversation history.",
            },
            {
                "name": "Health",
                "description": "Service health monitoring and status checks.",
            },
        ],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # The browser UI may be served from another port
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("app.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())
