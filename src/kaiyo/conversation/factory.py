"""Factory for creating conversation stores."""

from typing import Any

from .base import ConversationStore


def create_conversation_store(
    backend: str = "memory",
    **kwargs: Any
) -> ConversationStore:
    """Create a conversation store.

    Args:
        backend: Backend type (only "memory"; nothing outlives the process)
        **kwargs: Backend-specific configuration
            For memory:
                - model: str (required)
                - system_prompt: str (required)

    Returns:
        ConversationStore instance

    Raises:
        ValueError: If backend type is not supported
    """
    if backend == "memory":
        from .in_memory import InMemoryConversationStore
        return InMemoryConversationStore(**kwargs)

    raise ValueError(
        f"Unsupported conversation backend: {backend}. "
        f"Supported backends: memory"
    )
