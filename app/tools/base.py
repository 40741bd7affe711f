"""Base types and definitions for tools."""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from app.exceptions import FlipletApiError


@dataclass(frozen=True)
class ToolDefinition:
    """Definition of a tool available to the AI assistant."""

    name: str
    description: str
    input_schema_class: type[BaseModel]

    def get_json_schema(self) -> dict[str, Any]:
        """Get JSON schema for this tool's input."""
        schema = self.input_schema_class.model_json_schema()
        schema.pop("title", None)
        schema.setdefault("properties", {})
        schema.setdefault("required", [])
        return schema

    def parse_input(self, raw_input: dict[str, Any]) -> BaseModel:
        """Parse and validate tool input."""
        return self.input_schema_class.model_validate(raw_input)


def error_result(error: Exception) -> dict[str, Any]:
    """Convert an exception into a tool result the model can read."""
    result: dict[str, Any] = {
        "is_error": True,
        "message": str(error),
    }

    if isinstance(error, FlipletApiError):
        result["status_code"] = error.status_code
        result["details"] = error.response_body

    return result
