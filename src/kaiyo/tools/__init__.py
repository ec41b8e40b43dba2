"""Tool declarations and dispatch.

Tool results are fed back into the conversation as ordinary messages, so
every failure here is reported as data rather than raised.
"""

from .base import BaseTool
from .data_structures import ToolCall, ToolCallResult, ToolFailure, ToolSuccess
from .factory import create_default_registry
from .geocode import GeocodeArguments, Geocoder, GeocodeTool, LocationQuery
from .itinerary import ITINERARY_SCHEMA, SaveItineraryTool
from .registry import ToolRegistry

__all__ = [
    "BaseTool",
    "GeocodeArguments",
    "GeocodeTool",
    "Geocoder",
    "ITINERARY_SCHEMA",
    "LocationQuery",
    "SaveItineraryTool",
    "ToolCall",
    "ToolCallResult",
    "ToolFailure",
    "ToolRegistry",
    "ToolSuccess",
    "create_default_registry",
]
