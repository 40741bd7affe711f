"""Conversation loop between the user, the model and the tool executor."""

import asyncio
import json
from collections.abc import Sequence
from typing import Any, Protocol

from app.exceptions import MalformedToolArgumentsError
from app.models.llm import ModelResponse
from app.models.messages import Message, ToolCall
from app.tools.base import ToolDefinition
from app.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MODEL = "claude-3-5-sonnet-20241022"
DEFAULT_MAX_ITERATIONS = 10

SAFETY_MESSAGE = (
    "I reached the maximum number of tool calls without producing a final answer. "
    "Please try rephrasing your question."
)


class ModelClient(Protocol):
    """Anything that can run one model call."""

    async def create(
        self,
        *,
        model: str | None = None,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition] | None = None,
    ) -> ModelResponse: ...


class ToolRunner(Protocol):
    """Anything that can execute a named tool."""

    async def execute(self, tool_name: str, arguments: dict[str, Any]) -> Any: ...


def get_system_prompt() -> Message:
    """Return the system message that scopes the assistant to one Fliplet app."""
    return Message.system(
        """You are a Fliplet App Assistant. Your ONLY purpose is to answer questions about the data sources, \
data entries, and media files for a specific Fliplet app using the tools provided.

You have access to tools that query the Fliplet REST API. Use these tools to look up real data before answering. \
Always be accurate: only state what the API data confirms. If a tool call fails, explain the error to the user clearly.

Scope rules:
- ONLY answer questions related to this Fliplet app's data sources, entries, files, and media.
- If the user asks something unrelated (general knowledge, coding help, opinions, etc.), politely decline and \
remind them you can only help with this app's data sources and files.
- Example refusal: "I can only help with questions about this Fliplet app's data sources and files. \
Try asking me things like: What data sources does this app have? or What media files are uploaded?"

Formatting rules:
- Use **Markdown tables** when listing multiple items with shared attributes (e.g. data sources with Name, ID, Columns).
- Keep responses concise: summarize large lists (e.g. show the top 10 and state the total count).
- Use bold for names and IDs. Use bullet lists for short enumerations.
- For data source entries, format as a clean table with column headers.
- Avoid repeating obvious labels; let table headers do the work.
- If there are many items, group them by type or category when possible."""
    )


class ChatEngine:
    """Owns one conversation's history and drives the tool-calling loop.

    Each call to chat() appends the user message, then alternates model calls
    and tool rounds until the model answers in plain text or the iteration
    cap is reached. All tool calls of one round run concurrently and their
    results are appended in the order the model issued them.

    Tool failures come back from the executor as data. Model-call failures
    and malformed tool arguments propagate out of chat(); the history up to
    that point is kept.
    """

    def __init__(
        self,
        model_client: ModelClient,
        tool_executor: ToolRunner,
        tools: Sequence[ToolDefinition],
        model: str | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ):
        """Initialize the engine.

        Args:
            model_client: Client used for every model call
            tool_executor: Executor that dispatches tool calls
            tools: Tool definitions attached to every model call
            model: Model name
            max_iterations: Maximum number of tool-call rounds per chat() call
        """
        if model_client is None:
            raise ValueError("ChatEngine requires a model client")
        if tool_executor is None:
            raise ValueError("ChatEngine requires a tool executor")
        if tools is None:
            raise ValueError("ChatEngine requires a tools list")
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")

        self._model_client = model_client
        self._tool_executor = tool_executor
        self._tools = tuple(tools)

        self.model = model or DEFAULT_MODEL
        self.max_iterations = max_iterations

        self._history: list[Message] = []

    def get_history(self) -> list[Message]:
        """Return a snapshot of the conversation history."""
        return list(self._history)

    def reset(self) -> None:
        """Clear the conversation history to start a fresh chat."""
        self._history = []

    async def chat(self, user_message: str) -> str:
        """Send a user message and return the assistant's final text answer.

        Raises:
            MalformedToolArgumentsError: If the model sends tool arguments that are not a JSON object
            UnknownToolError: If the model calls a tool the executor does not know
            Exception: Whatever the model client raises when the model call fails
        """
        self._history.append(Message.user(user_message))

        rounds = 0
        while rounds < self.max_iterations:
            response = await self._model_client.create(
                model=self.model,
                messages=[get_system_prompt(), *self._history],
                tools=self._tools or None,
            )
            assistant_message = response.message

            if not assistant_message.has_tool_calls:
                answer = assistant_message.content or ""
                self._history.append(Message.assistant(answer))
                logger.debug(f"Conversation answered after {rounds} tool rounds")
                return answer

            rounds += 1
            self._history.append(assistant_message)
            self._history.extend(await self._run_tool_round(assistant_message.tool_calls))

        logger.warning(f"Stopping after {self.max_iterations} tool-call rounds without a final answer")
        self._history.append(Message.assistant(SAFETY_MESSAGE))
        return SAFETY_MESSAGE

    async def _run_tool_round(self, tool_calls: Sequence[ToolCall]) -> list[Message]:
        """Execute one round of tool calls concurrently, keeping call order."""
        parsed = [(call, self._parse_arguments(call)) for call in tool_calls]
        logger.info(f"Dispatching {len(parsed)} tool calls: {', '.join(call.name for call, _ in parsed)}")

        results = await asyncio.gather(
            *(self._tool_executor.execute(call.name, arguments) for call, arguments in parsed)
        )

        return [
            Message.tool(call.id, json.dumps(result, default=str))
            for (call, _), result in zip(parsed, results, strict=True)
        ]

    @staticmethod
    def _parse_arguments(call: ToolCall) -> dict[str, Any]:
        try:
            arguments = json.loads(call.arguments) if call.arguments else {}
        except json.JSONDecodeError as e:
            raise MalformedToolArgumentsError(call.name, call.arguments, str(e)) from e

        if not isinstance(arguments, dict):
            raise MalformedToolArgumentsError(call.name, call.arguments, "expected a JSON object")
        return arguments
