from .accumulator import DeltaAccumulator
from .base import LLMProvider
from .factory import create_llm_provider
from .models import (
    ChatMessage,
    CompletionDelta,
    LLMResponse,
    StreamingResponse,
    ToolCallDelta,
    ToolCallRequest,
    ToolSpec,
)
from .providers import AzureOpenAIProvider, DeepSeekProvider, OpenAIProvider

__all__ = [
    "LLMProvider",
    "create_llm_provider",
    "ChatMessage",
    "CompletionDelta",
    "DeltaAccumulator",
    "LLMResponse",
    "StreamingResponse",
    "ToolCallDelta",
    "ToolCallRequest",
    "ToolSpec",
    "AzureOpenAIProvider",
    "DeepSeekProvider",
    "OpenAIProvider",
]
