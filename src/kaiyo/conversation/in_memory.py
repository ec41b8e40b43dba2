"""In-memory conversation store.

Simple dict-based storage for session-only conversations.
Data is lost when the application exits.
"""

from loguru import logger

from .base import ConversationStore
from .models import ConversationState


class InMemoryConversationStore(ConversationStore):
    """In-memory conversation store (process lifetime only).

    Every new conversation is seeded with the configured model and
    system prompt.
    """

    def __init__(self, model: str, system_prompt: str):
        self._model = model
        self._system_prompt = system_prompt
        self._states: dict[str, ConversationState] = {}

    async def get(self, chat_id: str) -> ConversationState | None:
        """Get a conversation if it exists."""
        return self._states.get(chat_id)

    async def get_or_create(
        self,
        chat_id: str,
        user_id: str | None = None
    ) -> ConversationState:
        """Get or create conversation state."""
        state = self._states.get(chat_id)
        if state is None:
            state = ConversationState.create(
                chat_id=chat_id,
                model=self._model,
                system_prompt=self._system_prompt,
                user_id=user_id,
            )
            self._states[chat_id] = state
            logger.debug(f"Created conversation {chat_id} (model={self._model})")
        return state

    async def delete(self, chat_id: str) -> bool:
        """Delete a conversation."""
        return self._states.pop(chat_id, None) is not None

    async def list_ids(self) -> list[str]:
        """List conversation ids in creation order."""
        return list(self._states)

    @property
    def backend_type(self) -> str:
        return "memory"
