"""Streaming of turn output to HTTP clients.

A turn's producer task writes StreamEvents to a bounded FragmentChannel;
StreamBridge reads them back as SSE frames while watching for client
disconnection.
"""

from .bridge import StreamBridge
from .channel import FragmentChannel
from .sse import StreamEvent, escape_data, format_event, parse_frames, unescape_data

__all__ = [
    "FragmentChannel",
    "StreamBridge",
    "StreamEvent",
    "escape_data",
    "format_event",
    "parse_frames",
    "unescape_data",
]
