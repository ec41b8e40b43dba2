"""Structured itinerary extraction tool."""

from typing import Any

from pydantic import BaseModel

from ..conversation.models import Itinerary
from .base import BaseTool

ITINERARY_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Itinerary",
    "type": "object",
    "required": ["destination", "days"],
    "properties": {
        "destination": {"type": "string"},
        "startDate": {"type": "string"},
        "endDate": {"type": "string"},
        "currency": {"type": "string"},
        "days": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["day", "items"],
                "properties": {
                    "day": {"type": "integer", "minimum": 1},
                    "label": {"type": "string"},
                    "items": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "required": ["title"],
                            "properties": {
                                "title": {"type": "string"},
                                "city": {"type": "string"},
                                "place": {"type": "string"},
                                "category": {"type": "string"},
                                "startTime": {"type": "string"},
                                "endTime": {"type": "string"},
                                "notes": {"type": "string"},
                                "lat": {"type": "number"},
                                "lon": {"type": "number"},
                            },
                            "additionalProperties": False,
                        },
                    },
                },
                "additionalProperties": False,
            },
        },
    },
    "additionalProperties": False,
}


class SaveItineraryTool(BaseTool):
    """Tool the model calls to hand over a finalized itinerary.

    Only exposed during extraction. A successful ``execute`` carries the
    validated Itinerary as its payload, which is also what the history
    records as the tool result.
    """

    @property
    def name(self) -> str:
        return "save_itinerary"

    @property
    def description(self) -> str:
        return "Call this ONLY when a finalized itinerary is ready."

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return ITINERARY_SCHEMA

    @property
    def arguments_model(self) -> type[BaseModel]:
        return Itinerary

    async def run(self, arguments: Itinerary) -> Itinerary:
        return arguments
