"""Server-Sent-Events framing.

Frames are separated by blank lines, so payloads must never contain a raw
line break. ``escape_data`` turns line breaks into two-character escape
sequences; ``unescape_data`` is its exact inverse.
"""

from dataclasses import dataclass

_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r"}
_UNESCAPES = {"\\": "\\", "n": "\n", "r": "\r"}


@dataclass(frozen=True)
class StreamEvent:
    """One event sent to the client.

    Attributes:
        data: Raw (unescaped) payload, usually a narrative fragment
        event: Optional event name; None for plain narrative fragments
    """

    data: str
    event: str | None = None


def escape_data(text: str) -> str:
    """Escape backslashes and line breaks so text fits on one data line."""
    return "".join(_ESCAPES.get(ch, ch) for ch in text)


def unescape_data(text: str) -> str:
    """Invert ``escape_data``.

    Unknown escape sequences and a trailing lone backslash are kept as-is.
    """
    out: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\\" and i + 1 < len(text) and text[i + 1] in _UNESCAPES:
            out.append(_UNESCAPES[text[i + 1]])
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def format_event(event: StreamEvent) -> str:
    """Render an event as an SSE frame terminated by a blank line."""
    frame = f"data: {escape_data(event.data)}\n\n"
    if event.event:
        frame = f"event: {event.event}\n" + frame
    return frame


def parse_frames(body: str) -> list[StreamEvent]:
    """Split an SSE body back into events (used by clients and tests)."""
    events = []
    for block in body.split("\n\n"):
        if not block.strip():
            continue
        name = None
        data_lines = []
        for line in block.split("\n"):
            if line.startswith("event: "):
                name = line[len("event: "):]
            elif line.startswith("data: "):
                data_lines.append(line[len("data: "):])
        events.append(StreamEvent(data=unescape_data("\n".join(data_lines)), event=name))
    return events
