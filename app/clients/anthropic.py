"""Anthropic API client with rate limiting and error handling."""

import asyncio
import json
import os
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Literal, TypeVar

import tiktoken
from anthropic import APIError, AsyncAnthropic
from anthropic.types import Message as AnthropicResponseMessage
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter
from pydantic import BaseModel

from app.models.llm import LLMUsage, ModelResponse
from app.models.messages import Message, ToolCall
from app.tools.base import ToolDefinition
from app.utils.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


class CacheControl(BaseModel):
    """Cache control configuration for prompt caching."""

    type: Literal["ephemeral"] = "ephemeral"


class AnthropicMessage(BaseModel):
    """Message format for Anthropic API."""

    role: Literal["user", "assistant"]
    content: str | list[dict[str, Any]]


class AnthropicTool(BaseModel):
    """Tool definition for Anthropic API."""

    name: str
    description: str
    input_schema: dict[str, Any]
    cache_control: CacheControl | None = None


@dataclass
class AnthropicConfig:
    """Configuration for Anthropic API client."""

    model: str = "claude-3-5-sonnet-20241022"
    max_tokens: int = 4096
    temperature: float = 0.1
    max_retries: int = 3
    retry_delay: float = 1.0

    requests_per_minute: int = 50
    tokens_per_minute: int = 40_000


class AnthropicRateLimiter:
    """Client-side rate limiter using the limits library."""

    def __init__(self, requests_per_minute: int = 50, tokens_per_minute: int = 40_000):
        """Initialize rate limiter.

        Args:
            requests_per_minute: Maximum requests per minute
            tokens_per_minute: Maximum tokens per minute
        """
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)

        self.request_limit = parse(f"{requests_per_minute}/minute")
        self.token_limit = parse(f"{tokens_per_minute}/minute")

    async def check_rate_limit(self, estimated_tokens: int, identifier: str = "anthropic") -> None:
        """Wait until the request fits within the request and token budgets."""
        logger.debug(f"Checking rate limit for {estimated_tokens} tokens, identifier: {identifier}")

        if not self.limiter.hit(self.request_limit, identifier):
            await self._wait_for_reset(self.request_limit, identifier, "Request")

        token_identifier = f"{identifier}_tokens"
        cost = max(1, min(estimated_tokens, self.token_limit.amount))
        if not self.limiter.hit(self.token_limit, token_identifier, cost=cost):
            await self._wait_for_reset(self.token_limit, token_identifier, "Token")

    async def _wait_for_reset(self, limit: Any, identifier: str, label: str) -> None:
        window_stats = self.limiter.get_window_stats(limit, identifier)
        if window_stats:
            wait_time = max(0.0, window_stats.reset_time - time.time())
            wait_time = min(wait_time, 60.0)
            if wait_time > 0:
                logger.warning(f"{label} rate limit exceeded, waiting {wait_time:.2f}s")
                await asyncio.sleep(wait_time)


def to_anthropic_tools(tools: Sequence[ToolDefinition]) -> list[AnthropicTool]:
    """Convert tool definitions, marking the last one for prompt caching."""
    anthropic_tools = []
    for i, tool in enumerate(tools):
        # Cache control on the last tool caches all tool definitions
        cache_control = CacheControl() if i == len(tools) - 1 else None
        anthropic_tools.append(
            AnthropicTool(
                name=tool.name,
                description=tool.description,
                input_schema=tool.get_json_schema(),
                cache_control=cache_control,
            )
        )
    return anthropic_tools


def to_anthropic_messages(messages: Sequence[Message]) -> tuple[str, list[AnthropicMessage]]:
    """Split out the system prompt and convert the rest to Anthropic's format.

    Contiguous tool-result messages are merged into a single user turn, which
    is how Anthropic expects the results of one round of parallel tool use.
    """
    system_parts: list[str] = []
    converted: list[AnthropicMessage] = []
    pending_results: list[dict[str, Any]] = []

    def flush_results() -> None:
        if pending_results:
            converted.append(AnthropicMessage(role="user", content=list(pending_results)))
            pending_results.clear()

    for message in messages:
        if message.role == "tool":
            pending_results.append(
                {
                    "type": "tool_result",
                    "tool_use_id": message.tool_call_id,
                    "content": message.content or "",
                }
            )
            continue

        flush_results()

        if message.role == "system":
            if message.content:
                system_parts.append(message.content)
        elif message.role == "assistant" and message.tool_calls:
            blocks: list[dict[str, Any]] = []
            if message.content:
                blocks.append({"type": "text", "text": message.content})
            for call in message.tool_calls:
                blocks.append(
                    {
                        "type": "tool_use",
                        "id": call.id,
                        "name": call.name,
                        "input": json.loads(call.arguments or "{}"),
                    }
                )
            converted.append(AnthropicMessage(role="assistant", content=blocks))
        elif message.role == "assistant" and not message.content:
            # The API rejects empty text content; consecutive user turns are merged server-side
            continue
        else:
            converted.append(AnthropicMessage(role=message.role, content=message.content or ""))

    flush_results()
    return "\n\n".join(system_parts), converted


def from_anthropic_response(response: AnthropicResponseMessage) -> ModelResponse:
    """Convert an Anthropic response into a provider-agnostic assistant message."""
    texts: list[str] = []
    tool_calls: list[ToolCall] = []

    for block in response.content:
        if block.type == "text":
            texts.append(block.text)
        elif block.type == "tool_use":
            tool_calls.append(ToolCall(id=block.id, name=block.name, arguments=json.dumps(block.input)))
        else:
            logger.warning(f"Unknown content block type: {block.type}")

    usage = LLMUsage()
    if response.usage:
        usage = LLMUsage(
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            total_tokens=response.usage.input_tokens + response.usage.output_tokens,
            cache_creation_input_tokens=response.usage.cache_creation_input_tokens or 0,
            cache_read_input_tokens=response.usage.cache_read_input_tokens or 0,
        )

    return ModelResponse(
        message=Message.assistant("".join(texts) if texts else None, tool_calls),
        stop_reason=response.stop_reason,
        usage=usage,
        model=response.model,
    )


class AnthropicClient:
    """Model client backed by the Anthropic Messages API."""

    tokenizer: tiktoken.Encoding | None = None
    api_key: str
    client: AsyncAnthropic
    config: AnthropicConfig
    rate_limiter: AnthropicRateLimiter

    def __init__(
        self,
        api_key: str | None = None,
        config: AnthropicConfig | None = None,
        client: AsyncAnthropic | None = None,
    ):
        """Initialize Anthropic client.

        Args:
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var)
            config: Client configuration
            client: Optional preconfigured SDK client
        """
        anthropic_api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable is required")

        self.api_key = anthropic_api_key
        self.config = config or AnthropicConfig()
        # The SDK retries on its own; retries are handled below instead
        self.client = client or AsyncAnthropic(api_key=self.api_key, max_retries=0)
        self.rate_limiter = AnthropicRateLimiter(self.config.requests_per_minute, self.config.tokens_per_minute)

        try:
            # Close approximation for Claude
            self.tokenizer = tiktoken.encoding_for_model("gpt-4")
        except Exception:
            self.tokenizer = None

    async def create(
        self,
        *,
        model: str | None = None,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition] | None = None,
        **kwargs: Any,
    ) -> ModelResponse:
        """Run one model call.

        Args:
            model: Model name (defaults to the configured model)
            messages: System prompt followed by the conversation history
            tools: Tools the model may call; omitted from the request when empty
            **kwargs: Overrides for max_tokens and temperature

        Returns:
            The assistant message with any requested tool calls
        """
        system_prompt, anthropic_messages = to_anthropic_messages(messages)
        anthropic_tools = to_anthropic_tools(tools) if tools else []

        estimated_tokens = self._estimate_tokens(anthropic_messages, system_prompt)
        logger.debug(f"Estimated tokens: {estimated_tokens}")
        await self.rate_limiter.check_rate_limit(estimated_tokens)

        request_params: dict[str, Any] = {
            "model": model or self.config.model,
            "max_tokens": kwargs.get("max_tokens", self.config.max_tokens),
            "temperature": kwargs.get("temperature", self.config.temperature),
            "messages": [msg.model_dump() for msg in anthropic_messages],
        }
        if system_prompt:
            request_params["system"] = system_prompt
        if anthropic_tools:
            request_params["tools"] = [tool.model_dump(exclude_none=True) for tool in anthropic_tools]

        logger.debug(
            f"Calling {request_params['model']} with {len(anthropic_messages)} messages, "
            f"{len(anthropic_tools)} tools"
        )
        response: AnthropicResponseMessage = await self._request_with_retries(
            lambda: self.client.messages.create(**request_params)
        )

        logger.debug(f"Response received - Stop reason: {response.stop_reason}, Content blocks: {len(response.content)}")

        model_response = from_anthropic_response(response)
        usage = model_response.usage
        if usage is not None:
            logger.debug(
                f"Token usage - input: {usage.input_tokens}, output: {usage.output_tokens}, "
                f"cache read: {usage.cache_read_input_tokens}, cache hit rate: {usage.cache_hit_rate:.1f}%"
            )
        return model_response

    async def _request_with_retries(self, call: Callable[[], Awaitable[T]]) -> T:
        """Execute Anthropic API request with retry logic."""
        for attempt in range(self.config.max_retries):
            try:
                return await call()

            except APIError as e:
                status_code = getattr(e, "status_code", None)
                is_last_attempt = attempt >= self.config.max_retries - 1

                if status_code == 429 and not is_last_attempt:
                    retry_after = 60
                    response = getattr(e, "response", None)
                    if response is not None and hasattr(response, "headers"):
                        retry_after = int(response.headers.get("retry-after", 60))

                    if retry_after < 120:
                        logger.warning(f"Anthropic rate limited, retrying in {retry_after}s")
                        await asyncio.sleep(retry_after)
                        continue

                elif status_code is not None and status_code >= 500 and not is_last_attempt:
                    # Server error, retry with exponential backoff
                    await asyncio.sleep(self.config.retry_delay * (2**attempt))
                    continue

                # Not retryable or out of attempts
                raise

        raise RuntimeError(f"Failed to complete request after {self.config.max_retries} attempts")

    def _estimate_tokens(self, messages: Sequence[AnthropicMessage], system_prompt: str) -> int:
        """Estimate token count for rate limiting."""
        text_content = system_prompt

        for message in messages:
            if isinstance(message.content, str):
                text_content += message.content
            else:
                for block in message.content:
                    if block.get("type") == "text":
                        text_content += block["text"]
                    elif block.get("type") == "tool_result":
                        text_content += str(block.get("content", ""))
                    elif block.get("type") == "tool_use":
                        text_content += json.dumps(block.get("input", {}))

        return self.estimate_message_tokens(text_content)

    def estimate_message_tokens(self, message: str) -> int:
        """Estimate token count for a single piece of text."""
        try:
            return len(self.tokenizer.encode(message)) if self.tokenizer else len(message) // 4
        except Exception:
            # Fallback: roughly 4 characters per token
            return len(message) // 4
