"""Data structures for tool calls and their results."""

import json
import uuid
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field


def _encode(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    return str(value)


class ToolCall(BaseModel):
    """Represents a tool call request.

    Attributes:
        id_: Identifier of the call, echoed back in the result
        tool_name: Name of the tool to call
        arguments: Raw JSON argument payload, exactly as the model produced it
    """

    id_: str = Field(default_factory=lambda: str(uuid.uuid4()))
    tool_name: str
    arguments: str = ""


class ToolSuccess(BaseModel):
    """A tool call that produced a payload.

    The payload may itself report partial failures (for example a geocoding
    batch with one unresolved location).
    """

    kind: Literal["success"] = "success"
    tool_call_id: str
    tool_name: str
    payload: Any = None

    @property
    def error(self) -> bool:
        return False

    @property
    def content(self) -> str:
        """JSON text fed back to the model as the tool message."""
        return json.dumps(self.payload, ensure_ascii=False, default=_encode)


class ToolFailure(BaseModel):
    """A tool call that could not be carried out.

    Attributes:
        error_message: Human readable reason
        details: Optional structured context (e.g. validation errors)
    """

    kind: Literal["error"] = "error"
    tool_call_id: str
    tool_name: str
    error_message: str
    details: list[dict[str, Any]] | None = None

    @property
    def error(self) -> bool:
        return True

    @property
    def content(self) -> str:
        """JSON text fed back to the model as the tool message."""
        body: dict[str, Any] = {"error": self.error_message}
        if self.details:
            body["details"] = self.details
        return json.dumps(body, ensure_ascii=False, default=str)


ToolCallResult = Annotated[ToolSuccess | ToolFailure, Field(discriminator="kind")]
