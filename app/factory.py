"""Composition root: wires clients, tools and engines from settings."""

from collections.abc import Callable
from dataclasses import dataclass

from app.clients.anthropic import AnthropicClient, AnthropicConfig
from app.clients.fliplet import FlipletClient
from app.config import Settings
from app.services.chat_engine import ChatEngine
from app.services.session_manager import SessionRegistry
from app.tools import TOOL_DEFINITIONS, ToolExecutor


@dataclass
class Components:
    """Process-wide collaborators shared by every session."""

    fliplet_client: FlipletClient
    tool_executor: ToolExecutor
    model_client: AnthropicClient
    create_engine: Callable[[], ChatEngine]

    async def aclose(self) -> None:
        """Release network resources."""
        await self.fliplet_client.aclose()


def build_components(settings: Settings) -> Components:
    """Build the shared clients and a factory for per-session engines."""
    fliplet_client = FlipletClient(
        api_token=settings.fliplet_api_token,
        app_id=settings.fliplet_app_id,
        base_url=settings.fliplet_api_url,
        timeout=settings.request_timeout,
    )
    tool_executor = ToolExecutor(fliplet_client)
    model_client = AnthropicClient(
        api_key=settings.anthropic_api_key,
        config=AnthropicConfig(model=settings.model, max_tokens=settings.max_tokens),
    )

    def create_engine() -> ChatEngine:
        return ChatEngine(
            model_client=model_client,
            tool_executor=tool_executor,
            tools=TOOL_DEFINITIONS,
            model=settings.model,
            max_iterations=settings.max_iterations,
        )

    return Components(
        fliplet_client=fliplet_client,
        tool_executor=tool_executor,
        model_client=model_client,
        create_engine=create_engine,
    )


def build_session_registry(settings: Settings, components: Components) -> SessionRegistry:
    """Create the session registry using the configured limits."""
    return SessionRegistry(
        components.create_engine,
        max_sessions=settings.max_sessions,
        session_ttl_minutes=settings.session_ttl_minutes,
        cleanup_interval_minutes=settings.cleanup_interval_minutes,
    )
