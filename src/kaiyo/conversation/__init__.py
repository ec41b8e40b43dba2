"""Conversation module for kaiyo.

Holds the per-session message history and the extracted itinerary.
"""

from .base import ConversationStore
from .factory import create_conversation_store
from .in_memory import InMemoryConversationStore
from .models import ConversationState, DayItem, DayPlan, Itinerary

__all__ = [
    "ConversationState",
    "ConversationStore",
    "DayItem",
    "DayPlan",
    "InMemoryConversationStore",
    "Itinerary",
    "create_conversation_store",
]
