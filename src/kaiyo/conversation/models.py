"""Data models for conversations and itineraries.

These models define the structure of conversation state and of the
itinerary artifact extracted from it, independent of the store used.
"""

import asyncio
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from ..llm.models import ChatMessage


class _ItineraryModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize with camelCase keys, leaving out unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class DayItem(_ItineraryModel):
    """A single stop or activity within a day."""

    title: str = Field(min_length=1, description="Activity title, e.g. 'Tadiandamol Trek'")
    city: str | None = Field(default=None, description="City or town context")
    place: str | None = Field(default=None, description="Point of interest name")
    category: str | None = Field(default=None, description="e.g. sightseeing, food, trek")
    start_time: str | None = Field(default=None, alias="startTime", description="'09:00' or ISO time")
    end_time: str | None = Field(default=None, alias="endTime")
    notes: str | None = None
    lat: float | None = Field(default=None, description="Geocoded latitude")
    lon: float | None = Field(default=None, description="Geocoded longitude")


class DayPlan(_ItineraryModel):
    """The ordered activities of one day."""

    day: int = Field(ge=1, description="1-based day index")
    label: str | None = Field(default=None, description="e.g. 'Arrival', 'Trek day'")
    items: list[DayItem]


class Itinerary(_ItineraryModel):
    """Structured travel plan extracted from a conversation."""

    destination: str = Field(min_length=1)
    start_date: str | None = Field(default=None, alias="startDate", description="ISO date")
    end_date: str | None = Field(default=None, alias="endDate", description="ISO date")
    currency: str | None = Field(default=None, description="e.g. INR, USD")
    days: list[DayPlan] = Field(min_length=1)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ConversationState(BaseModel):
    """Complete state of one chat session.

    The message history is append-only: it is seeded with exactly one
    system message and never reordered or truncated. The itinerary is only
    ever replaced as a whole.
    """

    chat_id: str
    user_id: str | None = None
    model: str = Field(description="Active model identifier")
    system_prompt: str
    itinerary: Itinerary | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    _messages: list[ChatMessage] = PrivateAttr(default_factory=list)
    _issued_call_ids: set[str] = PrivateAttr(default_factory=set)
    _turn_lock: asyncio.Lock = PrivateAttr(default_factory=asyncio.Lock)

    def model_post_init(self, __context: Any) -> None:
        self._messages.append(ChatMessage(role="system", content=self.system_prompt))

    @classmethod
    def create(
        cls,
        chat_id: str,
        model: str,
        system_prompt: str,
        user_id: str | None = None
    ) -> "ConversationState":
        """Create a conversation seeded with its system message."""
        return cls(chat_id=chat_id, model=model, system_prompt=system_prompt, user_id=user_id)

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        """Snapshot of the history, oldest first."""
        return tuple(self._messages)

    @property
    def turn_lock(self) -> asyncio.Lock:
        """Lock held for the duration of a turn on this conversation."""
        return self._turn_lock

    def __len__(self) -> int:
        return len(self._messages)

    def append(self, message: ChatMessage) -> None:
        """Append a message to the history.

        Args:
            message: The message to add

        Raises:
            ValueError: If the message is a second system message, or a tool
                message answering a call no earlier assistant message made
        """
        if message.role == "system":
            raise ValueError("conversation already has its system message")
        if message.role == "tool" and message.tool_call_id not in self._issued_call_ids:
            raise ValueError(
                f"tool message answers unknown call id {message.tool_call_id!r}"
            )

        self._messages.append(message)
        if message.tool_calls:
            self._issued_call_ids.update(call.id for call in message.tool_calls)
        self.updated_at = _utcnow()

    def replace_itinerary(self, itinerary: Itinerary) -> None:
        """Replace the current itinerary wholesale."""
        self.itinerary = itinerary
        self.updated_at = _utcnow()

    def to_history(self) -> list[dict[str, Any]]:
        """JSON-ready history, oldest first."""
        return [
            message.model_dump(mode="json", exclude_none=True)
            for message in self._messages
        ]

    def itinerary_json(self) -> dict[str, Any] | None:
        """JSON-ready itinerary, or None when nothing was extracted yet."""
        if self.itinerary is None:
            return None
        return self.itinerary.to_json_dict()
