"""Model-call data types (provider-agnostic)."""

from dataclasses import dataclass

from app.models.messages import Message


@dataclass
class LLMUsage:
    """Token usage information from the model provider."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0

    @property
    def cache_hit_rate(self) -> float:
        """Calculate cache hit rate as percentage."""
        total_input = self.input_tokens + self.cache_read_input_tokens + self.cache_creation_input_tokens
        if total_input == 0:
            return 0.0
        return (self.cache_read_input_tokens / total_input) * 100


@dataclass
class ModelResponse:
    """Provider-agnostic response from one model call."""

    message: Message
    stop_reason: str | None = None
    usage: LLMUsage | None = None
    model: str | None = None
