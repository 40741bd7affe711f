"""Exception hierarchy for the Fliplet app assistant.

Remote-API faults (FlipletApiError) are converted into tool results so the
model can explain them. Everything else propagates out of the chat turn.
"""

from typing import Any


class AssistantError(Exception):
    """Base exception for all assistant errors."""


class FlipletApiError(AssistantError):
    """Raised when a Fliplet REST API call fails.

    Carries the HTTP status code (0 for transport failures and timeouts) and
    the parsed response body.
    """

    def __init__(self, message: str, status_code: int, response_body: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_body = response_body if response_body is not None else {}


class UnknownToolError(AssistantError):
    """Raised when the model references a tool that has no handler."""

    def __init__(self, tool_name: str):
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name


class ToolRegistryMismatchError(AssistantError):
    """Raised when the dispatch table and the tool definitions disagree."""


class MalformedToolArgumentsError(AssistantError):
    """Raised when a tool call's arguments are not a JSON object."""

    def __init__(self, tool_name: str, raw_arguments: str, reason: str):
        super().__init__(f"Malformed arguments for tool {tool_name}: {reason}")
        self.tool_name = tool_name
        self.raw_arguments = raw_arguments
