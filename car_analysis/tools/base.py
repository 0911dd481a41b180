"""
Closed set of tool kinds and the capability every tool implements.
"""
from abc import ABC, abstractmethod
from enum import Enum
from typing import Type

from langchain_core.tools import BaseTool
from pydantic import BaseModel

from car_analysis.core.errors import ToolResult


class ToolKind(str, Enum):
    WEB_SEARCH = "web_search"
    PRICE_LOOKUP = "price_lookup"
    SPEC_LOOKUP = "spec_lookup"


class CarTool(ABC):
    """
    A tool the specialists can call.

    ``declaration`` is the LangChain tool exposing the input schema to the
    model; ``execute`` does the work on validated input and reports failures
    through the returned ToolResult.
    """

    kind: ToolKind
    input_model: Type[BaseModel]
    declaration: BaseTool

    @abstractmethod
    async def execute(self, params: BaseModel) -> ToolResult:
        ...
