"""Shared fixtures: a scripted model client and response builders."""

import json
from collections.abc import Sequence
from typing import Any

import pytest

from app.models.llm import ModelResponse
from app.models.messages import Message, ToolCall
from app.tools.base import ToolDefinition


def text_response(text: str) -> ModelResponse:
    """Build a model response with a plain-text answer."""
    return ModelResponse(message=Message.assistant(text), stop_reason="end_turn")


def tool_response(*calls: tuple[str, dict[str, Any]], id_prefix: str = "call") -> ModelResponse:
    """Build a model response requesting the given (name, arguments) tool calls."""
    tool_calls = [
        ToolCall(id=f"{id_prefix}_{i}", name=name, arguments=json.dumps(arguments))
        for i, (name, arguments) in enumerate(calls)
    ]
    return ModelResponse(message=Message.assistant(None, tool_calls), stop_reason="tool_use")


class ScriptedModelClient:
    """Returns queued responses in order and records every call."""

    def __init__(self, responses: Sequence[ModelResponse | Exception] = (), repeat_last: bool = False):
        self.responses = list(responses)
        self.repeat_last = repeat_last
        self.calls: list[dict[str, Any]] = []

    async def create(
        self,
        *,
        model: str | None = None,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition] | None = None,
    ) -> ModelResponse:
        self.calls.append({"model": model, "messages": list(messages), "tools": tools})

        if self.repeat_last and len(self.responses) == 1:
            response = self.responses[0]
        else:
            response = self.responses.pop(0)

        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def scripted_model():
    """Factory for scripted model clients."""
    return ScriptedModelClient
