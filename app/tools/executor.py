"""Dispatch of model tool calls to Fliplet API client methods."""

from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from pydantic import BaseModel

from app.clients.fliplet import FlipletClient
from app.exceptions import ToolRegistryMismatchError, UnknownToolError
from app.tools.base import ToolDefinition, error_result
from app.tools.data_sources import DataSourceEntriesInput, DataSourceInput
from app.tools.media import ListMediaInput, MediaFileInput
from app.tools.registry import TOOL_DEFINITIONS
from app.utils.logging import get_logger

logger = get_logger(__name__)

ToolHandler = Callable[[Any], Awaitable[Any]]


class ToolExecutor:
    """Maps tool names to Fliplet client calls.

    API failures are returned as error records so the model can read them and
    explain the problem; an unknown tool name raises because it means the
    tool definitions and the dispatch table have drifted apart.
    """

    def __init__(self, client: FlipletClient, tools: Sequence[ToolDefinition] = TOOL_DEFINITIONS):
        """Initialize the executor.

        Args:
            client: Fliplet client shared by every handler
            tools: Tool definitions offered to the model
        """
        if client is None:
            raise ValueError("ToolExecutor requires a FlipletClient")

        self.client = client
        self._tools: dict[str, ToolDefinition] = {tool.name: tool for tool in tools}
        self._handlers: dict[str, ToolHandler] = {
            "list_data_sources": self._list_data_sources,
            "get_data_source": self._get_data_source,
            "get_data_source_entries": self._get_data_source_entries,
            "list_media": self._list_media,
            "get_media_file": self._get_media_file,
        }

        if set(self._handlers) != set(self._tools):
            missing = sorted(set(self._tools) - set(self._handlers))
            extra = sorted(set(self._handlers) - set(self._tools))
            raise ToolRegistryMismatchError(f"Tool handlers out of sync: missing={missing}, extra={extra}")

    async def execute(self, tool_name: str, arguments: dict[str, Any]) -> Any:
        """Execute a tool call and return the API result or an error record.

        Raises:
            UnknownToolError: If no handler exists for tool_name
        """
        handler = self._handlers.get(tool_name)
        if handler is None:
            raise UnknownToolError(tool_name)

        try:
            params = self._tools[tool_name].parse_input(arguments)
            return await handler(params)
        except Exception as e:
            logger.warning(f"Tool {tool_name} failed: {e}")
            return error_result(e)

    async def _list_data_sources(self, params: BaseModel) -> Any:
        return await self.client.list_data_sources()

    async def _get_data_source(self, params: DataSourceInput) -> Any:
        return await self.client.get_data_source(params.data_source_id)

    async def _get_data_source_entries(self, params: DataSourceEntriesInput) -> Any:
        return await self.client.get_data_source_entries(
            params.data_source_id,
            where=params.where,
            limit=params.limit,
            offset=params.offset,
        )

    async def _list_media(self, params: ListMediaInput) -> Any:
        return await self.client.list_media(params.folder_id)

    async def _get_media_file(self, params: MediaFileInput) -> Any:
        return await self.client.get_media_file(params.file_id)
