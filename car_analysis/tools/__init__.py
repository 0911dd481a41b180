"""
Tools package for car analysis.

Modules:
- base: ToolKind and the CarTool interface
- web_search: Tavily-backed web search
- lookups: price band and spec lookups
- registry: validated, time-bounded execution by tool name
"""

from .base import CarTool, ToolKind
from .registry import ToolRegistry, build_default_registry

__all__ = [
    "CarTool",
    "ToolKind",
    "ToolRegistry",
    "build_default_registry",
]
