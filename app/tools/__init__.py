"""Fliplet tools offered to the model and their dispatcher."""

from app.tools.base import ToolDefinition
from app.tools.executor import ToolExecutor
from app.tools.registry import TOOL_DEFINITIONS

__all__ = ["TOOL_DEFINITIONS", "ToolDefinition", "ToolExecutor"]
