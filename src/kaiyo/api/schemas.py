"""Request and response bodies of the HTTP API."""

from pydantic import BaseModel, ConfigDict, Field


class TurnRequest(BaseModel):
    """Body of ``POST /api/v1/chats/``.

    ``chatID`` and ``userID`` keep the field names clients already send.
    """

    model_config = ConfigDict(populate_by_name=True)

    content: str = ""
    chat_id: str | None = Field(default=None, alias="chatID")
    user_id: str | None = Field(default=None, alias="userID")


class ErrorResponse(BaseModel):
    detail: str | list


class HealthResponse(BaseModel):
    status: str = "ok"
    provider: str
    model: str
    tools: list[str]
