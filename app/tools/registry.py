"""Static registry of the tools offered to the model."""

from app.tools.base import ToolDefinition
from app.tools.data_sources import GET_DATA_SOURCE, GET_DATA_SOURCE_ENTRIES, LIST_DATA_SOURCES
from app.tools.media import GET_MEDIA_FILE, LIST_MEDIA

TOOL_DEFINITIONS: tuple[ToolDefinition, ...] = (
    LIST_DATA_SOURCES,
    GET_DATA_SOURCE,
    GET_DATA_SOURCE_ENTRIES,
    LIST_MEDIA,
    GET_MEDIA_FILE,
)

if len({tool.name for tool in TOOL_DEFINITIONS}) != len(TOOL_DEFINITIONS):
    raise RuntimeError("Tool names must be unique")
