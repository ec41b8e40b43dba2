"""Abstract base class for conversation stores.

This module defines the interface for conversation storage.
The abstraction hides:
- Where conversation state lives
- How conversations are keyed and created
"""

from abc import ABC, abstractmethod

from .models import ConversationState


class ConversationStore(ABC):
    """Abstract conversation store.

    Provides a unified interface for looking up and creating the state of
    a chat session. A store hands out live ConversationState objects; the
    orchestrator mutates them in place.
    """

    @abstractmethod
    async def get(self, chat_id: str) -> ConversationState | None:
        """Return the conversation with this id, or None."""

    @abstractmethod
    async def get_or_create(
        self,
        chat_id: str,
        user_id: str | None = None
    ) -> ConversationState:
        """Return the conversation with this id, creating it on first use."""

    @abstractmethod
    async def delete(self, chat_id: str) -> bool:
        """Drop a conversation. Returns True if it existed."""

    @abstractmethod
    async def list_ids(self) -> list[str]:
        """Ids of all known conversations, oldest first."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""
