"""Tool registry and dispatcher."""

import asyncio

from loguru import logger

from ..llm.models import ToolCallRequest, ToolSpec
from .base import BaseTool
from .data_structures import ToolCall, ToolCallResult, ToolFailure


class ToolRegistry:
    """Declares the callable tools and routes invocations to them.

    Dispatch is total over tool names: unknown tools, malformed arguments
    and failures inside a tool all become ToolFailure results, so a
    conversation can always continue after a bad call.

    Hidden design decisions:
    - Tool lookup by name
    - Concurrency of calls within one batch
    - Conversion of unexpected exceptions into structured errors
    """

    def __init__(self, tools: list[BaseTool] | None = None):
        self._tools: dict[str, BaseTool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: BaseTool) -> "ToolRegistry":
        """Add a tool to the registry.

        Args:
            tool: The tool to add

        Returns:
            Self for method chaining

        Raises:
            ValueError: If a tool with the same name is already registered
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool {tool.name} already registered")
        self._tools[tool.name] = tool
        return self

    def get(self, name: str) -> BaseTool | None:
        return self._tools.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def specs(self) -> list[ToolSpec]:
        """List every registered tool signature, in registration order."""
        return [tool.to_spec() for tool in self._tools.values()]

    async def invoke(
        self,
        name: str,
        arguments: str,
        call_id: str | None = None
    ) -> ToolCallResult:
        """Invoke one tool by name.

        Args:
            name: Tool name as requested by the model
            arguments: Raw JSON argument payload
            call_id: Provider-assigned call identifier

        Returns:
            ToolSuccess or ToolFailure; never raises for tool-level problems
        """
        tool_call = ToolCall(tool_name=name, arguments=arguments)
        if call_id is not None:
            tool_call.id_ = call_id

        tool = self._tools.get(name)
        if tool is None:
            logger.warning(f"Model requested unknown tool {name!r} ({tool_call.id_})")
            return ToolFailure(
                tool_call_id=tool_call.id_,
                tool_name=name,
                error_message=f"Unknown tool: {name}. Available tools: {', '.join(self._tools) or 'none'}",
            )

        logger.info(f"Dispatching {name} ({tool_call.id_})")
        try:
            result = await tool.execute(tool_call)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Tool {name} failed ({tool_call.id_})")
            return ToolFailure(
                tool_call_id=tool_call.id_,
                tool_name=name,
                error_message=f"Error executing {name}: {e}",
            )

        if result.error:
            logger.warning(f"Tool {name} returned an error ({tool_call.id_})")
        return result

    async def dispatch(self, calls: list[ToolCallRequest]) -> list[ToolCallResult]:
        """Invoke a batch of calls from one assistant turn.

        Calls run concurrently; results come back in request order.
        """
        return list(await asyncio.gather(*(
            self.invoke(call.name, call.arguments, call.id) for call in calls
        )))
