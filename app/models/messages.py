"""Message and conversation data models."""

from typing import Literal

from pydantic import BaseModel, ConfigDict


class ToolCall(BaseModel):
    """A tool call requested by the assistant.

    ``arguments`` is the serialized JSON object exactly as the model produced
    it; it is decoded only when the call is dispatched.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    arguments: str = "{}"


class Message(BaseModel):
    """One turn in a conversation."""

    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant", "tool"]
    content: str | None = None
    tool_calls: tuple[ToolCall, ...] | None = None
    tool_call_id: str | None = None

    @property
    def has_tool_calls(self) -> bool:
        """Whether this is an assistant turn that requests tools."""
        return bool(self.tool_calls)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str | None, tool_calls: list[ToolCall] | None = None) -> "Message":
        return cls(role="assistant", content=content, tool_calls=tuple(tool_calls) if tool_calls else None)

    @classmethod
    def tool(cls, tool_call_id: str, content: str) -> "Message":
        return cls(role="tool", content=content, tool_call_id=tool_call_id)
