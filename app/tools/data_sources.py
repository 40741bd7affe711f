"""Data source tools."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.tools.base import ToolDefinition


class EmptyInput(BaseModel):
    """Input schema for tools that don't require parameters."""

    model_config = ConfigDict(extra="ignore")


class DataSourceInput(BaseModel):
    """Input schema for looking up one data source."""

    data_source_id: int = Field(..., description="The unique ID of the data source to retrieve.")


class DataSourceEntriesInput(BaseModel):
    """Input schema for querying data source entries."""

    data_source_id: int = Field(..., description="The unique ID of the data source to query.")
    where: dict[str, Any] | None = Field(
        None,
        description=(
            "Optional filter conditions as key-value pairs. "
            'Example: {"email": "john@example.com"} or {"Status": "Active"}. '
            "Supports MongoDB-style operators."
        ),
    )
    limit: int | None = Field(
        None,
        ge=0,
        description="Maximum number of entries to return. Useful for pagination or previewing data. Default is all entries.",
    )
    offset: int | None = Field(
        None,
        ge=0,
        description="Number of entries to skip before returning results. Use with limit for pagination.",
    )


LIST_DATA_SOURCES = ToolDefinition(
    name="list_data_sources",
    description=(
        "List all data sources belonging to the current Fliplet app. "
        "Returns an array of data source objects with id, name, columns, and metadata. "
        "Use this to discover what data is available."
    ),
    input_schema_class=EmptyInput,
)

GET_DATA_SOURCE = ToolDefinition(
    name="get_data_source",
    description=(
        "Get detailed information about a specific data source by its ID. "
        "Returns the data source object including name, columns, hooks, encryption status, and timestamps."
    ),
    input_schema_class=DataSourceInput,
)

GET_DATA_SOURCE_ENTRIES = ToolDefinition(
    name="get_data_source_entries",
    description=(
        "Query and retrieve entries (rows) from a specific data source. "
        "Supports filtering with a where clause and pagination with limit/offset. "
        "Returns an array of entry objects with id, data, and timestamps."
    ),
    input_schema_class=DataSourceEntriesInput,
)
