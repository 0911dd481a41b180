"""
Static tool registry.

Every ToolKind is registered exactly once, checked when the registry is
built. ``execute`` validates input, applies the timeout, and turns every
failure except cancellation into a ToolResult error.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from langchain_core.tools import BaseTool
from pydantic import ValidationError

from car_analysis.config import TOOL_TIMEOUT_SECONDS
from car_analysis.core.errors import (
    RunCancelledError,
    ToolErrorKind,
    ToolResult,
    ToolTimeoutError,
)
from car_analysis.core.guards import with_timeout
from car_analysis.tools.base import CarTool, ToolKind
from car_analysis.tools.lookups import PriceLookupTool, SpecLookupTool
from car_analysis.tools.web_search import TavilyClient, WebSearchTool

logger = logging.getLogger(__name__)


class ToolRegistry:
    def __init__(self, tools: Iterable[CarTool], timeout_seconds: float = TOOL_TIMEOUT_SECONDS):
        mapping: Dict[ToolKind, CarTool] = {}
        for car_tool in tools:
            if car_tool.kind in mapping:
                raise ValueError(f"Tool kind registered twice: {car_tool.kind.value}")
            mapping[car_tool.kind] = car_tool

        missing = [kind.value for kind in ToolKind if kind not in mapping]
        if missing:
            raise ValueError(f"Tool kinds without an implementation: {', '.join(missing)}")

        self._tools = mapping
        self.timeout_seconds = timeout_seconds

    def resolve(self, name: Union[str, ToolKind]) -> Optional[ToolKind]:
        try:
            return ToolKind(name)
        except ValueError:
            return None

    def get(self, kind: ToolKind) -> CarTool:
        return self._tools[kind]

    def declarations(self, kinds: Optional[Iterable[ToolKind]] = None) -> List[BaseTool]:
        """LangChain tool declarations to bind to a model."""
        selected = list(kinds) if kinds is not None else list(ToolKind)
        return [self._tools[kind].declaration for kind in selected]

    async def execute(self, name: Union[str, ToolKind], args: Optional[Dict[str, Any]] = None) -> ToolResult:
        kind = self.resolve(name)
        if kind is None:
            return ToolResult.failure(str(name), ToolErrorKind.INVALID_INPUT, f"Unknown tool '{name}'")

        car_tool = self._tools[kind]
        try:
            params = car_tool.input_model.model_validate(args or {})
        except ValidationError as e:
            logger.warning(f"⚠️ Invalid input for {kind.value}: {e.errors()}")
            return ToolResult.failure(kind.value, ToolErrorKind.INVALID_INPUT, str(e))

        try:
            return await with_timeout(car_tool.execute(params), self.timeout_seconds)
        except ToolTimeoutError as e:
            return ToolResult.failure(kind.value, ToolErrorKind.TIMEOUT, str(e))
        except RunCancelledError:
            raise
        except Exception as e:
            logger.exception(f"❌ Tool {kind.value} failed: {e}")
            return ToolResult.failure(kind.value, ToolErrorKind.FAILED, str(e))


def build_default_registry(
    tavily_client: Optional[TavilyClient] = None,
    timeout_seconds: float = TOOL_TIMEOUT_SECONDS,
) -> ToolRegistry:
    return ToolRegistry(
        [WebSearchTool(tavily_client), PriceLookupTool(), SpecLookupTool()],
        timeout_seconds=timeout_seconds,
    )
