"""
Shared plumbing for the lightweight orchestrator's steps.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage

from car_analysis.core.context import RunContext
from car_analysis.core.errors import ToolResult
from car_analysis.core.messages import message_text

logger = logging.getLogger(__name__)


@dataclass
class StepResult:
    text: str = ""
    sources: List[Dict[str, str]] = field(default_factory=list)


async def stream_text(ctx: RunContext, model: BaseChatModel, messages: Sequence[BaseMessage]) -> str:
    """Stream a model answer to the client as text deltas; return the full text."""
    chunks = []
    async for chunk in ctx.cancel_token.stream(model.astream(list(messages))):
        text = message_text(chunk)
        if text:
            chunks.append(text)
            ctx.emitter.text_delta(text)
    return "".join(chunks)


async def call_tool(ctx: RunContext, name: str, args: Dict[str, Any]) -> ToolResult:
    """Run one grounding tool with tool start/result events. Failures come back as errors, not exceptions."""
    ctx.emitter.tool_start(name, args)
    result = await ctx.cancel_token.run(ctx.tools.execute(name, args))
    if result.ok:
        ctx.emitter.tool_result(name, result.output)
    else:
        logger.warning(f"⚠️ Grounding tool {name} degraded: {result.error.describe()}")
        ctx.emitter.tool_result(name, {"error": result.error.model_dump(mode="json")})
    return result


def emit_sources(ctx: RunContext, results: Sequence[ToolResult]) -> List[Dict[str, str]]:
    sources: List[Dict[str, str]] = []
    seen = set()
    for result in results:
        for source in result.sources:
            if source["url"] in seen:
                continue
            seen.add(source["url"])
            sources.append(source)
            ctx.emitter.source_url(source["url"], source.get("title"))
    return sources
