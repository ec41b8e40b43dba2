"""Tool infrastructure shared by planning and extraction tools."""

import json
from abc import ABC, abstractmethod
from typing import Any

from loguru import logger
from pydantic import BaseModel, ValidationError

from ..llm.models import ToolSpec
from .data_structures import ToolCall, ToolCallResult, ToolFailure, ToolSuccess


class BaseTool(ABC):
    """Abstract base class for tools.

    A tool declares its JSON schema for the provider and a pydantic model
    that decodes the raw argument payload. ``execute`` never raises for bad
    input: malformed JSON and schema violations come back as ToolFailure.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the tool name."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Get the tool description for the LLM."""
        pass

    @property
    @abstractmethod
    def parameters_schema(self) -> dict[str, Any]:
        """Get the JSON schema for tool parameters."""
        pass

    @property
    @abstractmethod
    def arguments_model(self) -> type[BaseModel]:
        """Pydantic model the raw argument payload is decoded into."""
        pass

    @abstractmethod
    async def run(self, arguments: BaseModel) -> Any:
        """Carry out the call with decoded arguments.

        Args:
            arguments: Instance of ``arguments_model``

        Returns:
            JSON-serializable payload for the model
        """
        pass

    def parse_arguments(self, raw: str) -> BaseModel:
        """Decode a raw argument payload.

        Raises:
            ValidationError: If the payload is not valid JSON or violates
                the tool's schema
        """
        return self.arguments_model.model_validate_json(raw or "{}")

    async def execute(self, tool_call: ToolCall) -> ToolCallResult:
        """Execute the tool call.

        Args:
            tool_call: The tool call to execute

        Returns:
            ToolSuccess with the payload, or ToolFailure for bad arguments
        """
        try:
            arguments = self.parse_arguments(tool_call.arguments)
        except ValidationError as e:
            logger.warning(f"Rejected arguments for {self.name} ({tool_call.id_}): {e.error_count()} error(s)")
            return ToolFailure(
                tool_call_id=tool_call.id_,
                tool_name=self.name,
                error_message=f"Invalid arguments for {self.name}",
                details=json.loads(e.json(include_url=False)),
            )

        payload = await self.run(arguments)
        return ToolSuccess(
            tool_call_id=tool_call.id_,
            tool_name=self.name,
            payload=payload,
        )

    def to_spec(self) -> ToolSpec:
        """Convert tool to the provider-facing signature."""
        return ToolSpec(
            name=self.name,
            description=self.description,
            parameters=self.parameters_schema,
        )
