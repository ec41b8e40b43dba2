"""
Kaiyo: an AI travel-planning chat backend.

Turns a free-text travel request into a streamed narrative answer and a
structured itinerary, using an LLM provider augmented with tool calls.
Each subpackage hides one design decision: which provider is used, how
tools are dispatched, how conversations are stored, how a turn is
sequenced, and how fragments reach an HTTP client.
"""

__version__ = "0.1.0"

from .conversation import ConversationState, DayItem, DayPlan, Itinerary
from .llm import ChatMessage, LLMProvider, create_llm_provider
from .orchestrator import ChatOrchestrator, OrchestratorConfig, TurnReport

__all__ = [
    "ChatMessage",
    "ChatOrchestrator",
    "ConversationState",
    "DayItem",
    "DayPlan",
    "Itinerary",
    "LLMProvider",
    "OrchestratorConfig",
    "TurnReport",
    "create_llm_provider",
]
