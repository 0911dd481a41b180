"""
Specialist runner and compressor.

A specialist researches one topic (purchase, running costs, reliability)
with the tool registry bound to the analysis model, then its transcript is
condensed by the compression model into notes the supervisor and the
report writer can use.
"""
import json
import logging
from typing import Any, Dict, List, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage

from car_analysis.core.configuration import AnalysisConfig
from car_analysis.core.context import RunContext
from car_analysis.core.errors import ToolErrorKind, ToolResult
from car_analysis.core.guards import DEFAULT_RETRY_DELAY_SECONDS, with_retries
from car_analysis.core.message_truncation import context_budget, truncate_messages
from car_analysis.core.messages import message_text
from car_analysis.core.models import AnalysisBrief, SpecialistOutput
from car_analysis.core.state import SpecialistState
from car_analysis.orchestration.car_details import get_today_str
from car_analysis.orchestration.status_updates import emit_thought
from car_analysis.prompts.analysis_prompts import CompressionPrompt, SpecialistPrompt, SpecialistTaskPrompt
from car_analysis.tools.base import ToolKind

logger = logging.getLogger(__name__)

TOOL_LIMIT_MESSAGE = "Tool call limit reached. Write up your findings with the information you already have."

_specialist_prompt = SpecialistPrompt()
_task_prompt = SpecialistTaskPrompt()
_compression_prompt = CompressionPrompt()


def build_specialist_state(
    tool_name: str,
    analysis_topic: str,
    brief: AnalysisBrief,
    config: AnalysisConfig,
) -> SpecialistState:
    """Initial transcript for a specialist dispatched through ``tool_name`` (e.g. analyze_reliability)."""
    topic = tool_name.replace("analyze_", "").replace("_", " ")
    details = brief.car_details
    return {
        "topic": topic,
        "analysis_topic": analysis_topic,
        "specialist_messages": [
            SystemMessage(content=_specialist_prompt.format(
                date=get_today_str(),
                web_search_max_queries=config.web_search_max_queries,
            )),
            HumanMessage(content=_task_prompt.format(
                topic=topic,
                make=details.make,
                model=details.model,
                year=details.year,
                focus=analysis_topic,
                brief=brief.analysis_brief,
            )),
        ],
        "tool_call_iterations": 0,
    }


class SpecialistAgent:
    """Runs one specialist's tool loop and compresses its transcript."""

    def __init__(
        self,
        config: AnalysisConfig,
        ctx: RunContext,
        retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
    ):
        self.config = config
        self.ctx = ctx
        self.retry_delay = retry_delay
        self._web_searches = 0

    async def execute(self, state: SpecialistState, brief: AnalysisBrief) -> SpecialistOutput:
        transcript = await self.analyze(state, brief)
        return await self.compress(transcript)

    async def analyze(self, state: SpecialistState, brief: AnalysisBrief) -> List[BaseMessage]:
        """
        Tool loop: call the model, run the tools it asks for, repeat until it
        answers without tool calls or ``max_react_tool_calls`` rounds are used.

        Returns the full transcript. Model errors propagate.
        """
        topic = state["topic"]
        transcript: List[BaseMessage] = list(state["specialist_messages"])
        iterations = state.get("tool_call_iterations", 0)
        self._web_searches = 0

        logger.info(f"🔬 Specialist start: {topic} ({len(transcript)} messages)")
        self.ctx.emitter.analysis_update(
            f"Starting {topic} analysis",
            "thoughts",
            status="completed",
            message=brief.car_details.label,
        )

        model = self.ctx.model_selector(
            self.config.analysis_model, self.config.analysis_model_max_tokens
        ).bind_tools(self.ctx.tools.declarations())
        budget = context_budget(self.config.analysis_model, self.config.analysis_model_max_tokens)

        new_messages = 0
        while True:
            self.ctx.cancel_token.raise_if_cancelled()
            response = await self.ctx.cancel_token.run(model.ainvoke(truncate_messages(transcript, budget)))
            transcript.append(response)
            new_messages += 1

            tool_calls = getattr(response, "tool_calls", None) or []
            if not tool_calls:
                break

            if iterations >= self.config.max_react_tool_calls:
                logger.warning(f"⚠️ {topic} specialist hit the tool round limit ({iterations})")
                for call in tool_calls:
                    transcript.append(ToolMessage(content=TOOL_LIMIT_MESSAGE, tool_call_id=call["id"], name=call["name"]))
                    new_messages += 1
                break

            iterations += 1
            for call in tool_calls:
                transcript.append(await self._run_tool(call))
                new_messages += 1

        logger.info(f"✅ Specialist finished: {topic} after {iterations} tool rounds")
        await emit_thought(
            "analysis_completion",
            transcript,
            self.config,
            self.ctx,
            context=f"{topic} analysis completed with {new_messages} new messages",
            fallback_title=f"Finished {topic} analysis",
        )
        return transcript

    async def _run_tool(self, call: Dict[str, Any]) -> ToolMessage:
        name = call["name"]
        args = call.get("args") or {}
        self.ctx.emitter.tool_start(name, args)

        if self.ctx.tools.resolve(name) == ToolKind.WEB_SEARCH and self._web_searches >= self.config.web_search_max_queries:
            result = ToolResult.failure(
                name,
                ToolErrorKind.UNAVAILABLE,
                f"web search budget of {self.config.web_search_max_queries} queries is used up",
            )
        else:
            if self.ctx.tools.resolve(name) == ToolKind.WEB_SEARCH:
                self._web_searches += 1
            result = await self.ctx.cancel_token.run(self.ctx.tools.execute(name, args))

        if result.ok:
            self.ctx.emitter.tool_result(name, result.output)
            for source in result.sources:
                self.ctx.emitter.source_url(source["url"], source.get("title"))
            content = json.dumps(result.output, default=str)
        else:
            logger.warning(f"⚠️ Tool {name} degraded: {result.error.describe()}")
            self.ctx.emitter.tool_result(name, {"error": result.error.model_dump(mode="json")})
            content = result.error.describe()

        return ToolMessage(content=content, tool_call_id=call["id"], name=name)

    async def compress(self, transcript: Sequence[BaseMessage]) -> SpecialistOutput:
        """
        Condense a specialist transcript.

        The leading system message is swapped for the compression prompt and
        the compress request appended. The call is retried
        ``compression_max_retries`` times with linear backoff. ``raw_notes``
        keeps only the text of tool and assistant messages.
        """
        messages = list(transcript)
        compression_system = SystemMessage(content=_compression_prompt.format(date=get_today_str()))
        if messages and isinstance(messages[0], SystemMessage):
            messages[0] = compression_system
        else:
            messages.insert(0, compression_system)
        messages.append(HumanMessage(content=CompressionPrompt.REQUEST))

        truncated = truncate_messages(
            messages,
            context_budget(self.config.compression_model, self.config.compression_model_max_tokens),
        )
        model = self.ctx.model_selector(self.config.compression_model, self.config.compression_model_max_tokens)

        response = await with_retries(
            lambda: self.ctx.cancel_token.run(model.ainvoke(truncated)),
            retries=self.config.compression_max_retries,
            base_delay=self.retry_delay,
            label="Compression",
        )
        compressed = message_text(response).strip()

        raw_notes = "\n".join(
            text for text in (
                message_text(m) for m in transcript if isinstance(m, (ToolMessage, AIMessage))
            ) if text
        )

        logger.info(f"🗜️ Compressed {len(messages)} messages into {len(compressed)} chars")
        await emit_thought(
            "analysis_compression",
            truncated,
            self.config,
            self.ctx,
            context=f"Compressed {len(messages)} messages into summary",
            fallback_title="Summarised specialist findings",
        )
        return SpecialistOutput(compressed_analysis=compressed, raw_notes=raw_notes)
