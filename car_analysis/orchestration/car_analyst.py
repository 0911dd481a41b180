"""
Car analyst pipeline.

clarify_with_user -> (END with a question | write_analysis_brief)
-> analysis_supervisor -> final_report_generation -> END

``run_car_analyst`` is the only entry point callers need: it runs the graph
and maps every outcome, including failures and cancellation, to an
AnalysisResult.
"""
import logging
from typing import Any, Dict, Literal, Optional, Sequence

from langchain_core.messages import BaseMessage
from langchain_core.runnables import RunnableConfig
from langgraph.graph import END, START, StateGraph

from car_analysis.core.configuration import AnalysisConfig
from car_analysis.core.context import RunContext, get_run_settings
from car_analysis.core.errors import RunCancelledError
from car_analysis.core.guards import DEFAULT_RETRY_DELAY_SECONDS
from car_analysis.core.messages import last_user_text, normalize
from car_analysis.core.models import AnalysisResult
from car_analysis.core.state import AgentState
from car_analysis.orchestration.brief_writer import write_analysis_brief
from car_analysis.orchestration.clarification import clarify_with_user
from car_analysis.orchestration.report_writer import generate_final_report
from car_analysis.orchestration.supervisor import run_supervisor
from car_analysis.security.pii_redactor import redact_pii

logger = logging.getLogger(__name__)

PROBLEM_MESSAGE = "Car analysis failed with error: {error}"


async def clarify_node(state: AgentState, config: RunnableConfig) -> Dict[str, Any]:
    ctx, analysis_config, _ = get_run_settings(config)
    result = await clarify_with_user(state["input_messages"], analysis_config, ctx)
    return {"clarification_question": result.question if result.needs_clarification else None}


def route_after_clarify(state: AgentState) -> Literal["write_analysis_brief", "__end__"]:
    return END if state.get("clarification_question") else "write_analysis_brief"


async def brief_node(state: AgentState, config: RunnableConfig) -> Dict[str, Any]:
    ctx, analysis_config, _ = get_run_settings(config)
    ctx.emitter.analysis_started()
    brief = await write_analysis_brief(state["input_messages"], analysis_config, ctx)
    return {"brief": brief}


async def supervisor_node(state: AgentState, config: RunnableConfig) -> Dict[str, Any]:
    ctx, analysis_config, retry_delay = get_run_settings(config)
    outcome = await run_supervisor(state["brief"], analysis_config, ctx, retry_delay=retry_delay)
    return {
        "notes": outcome.notes,
        "raw_notes": outcome.raw_notes,
        "supervisor_iterations": outcome.iterations,
    }


async def final_report_node(state: AgentState, config: RunnableConfig) -> Dict[str, Any]:
    ctx, analysis_config, _ = get_run_settings(config)
    ctx.cancel_token.raise_if_cancelled()
    report = await generate_final_report(state["brief"], state.get("notes", []), analysis_config, ctx)
    return {"report": report}


def build_car_analyst_graph():
    graph = StateGraph(AgentState)
    graph.add_node("clarify_with_user", clarify_node)
    graph.add_node("write_analysis_brief", brief_node)
    graph.add_node("analysis_supervisor", supervisor_node)
    graph.add_node("final_report_generation", final_report_node)

    graph.add_edge(START, "clarify_with_user")
    graph.add_conditional_edges(
        "clarify_with_user",
        route_after_clarify,
        {"write_analysis_brief": "write_analysis_brief", END: END},
    )
    graph.add_edge("write_analysis_brief", "analysis_supervisor")
    graph.add_edge("analysis_supervisor", "final_report_generation")
    graph.add_edge("final_report_generation", END)
    return graph.compile()


async def run_car_analyst(
    config: AnalysisConfig,
    ctx: RunContext,
    messages: Optional[Sequence[BaseMessage]] = None,
    retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
) -> AnalysisResult:
    """
    Run one car analysis for ``ctx.messages`` (or already-normalized ``messages``).

    Never raises for pipeline failures: errors become a ``problem`` result and
    cancellation a ``cancelled`` result with no report.
    """
    input_messages = list(messages) if messages is not None else normalize(ctx.messages)
    logger.info(
        f"🚗 Car analysis {ctx.request_id} started: "
        f"{redact_pii(last_user_text(input_messages))[:120]!r}"
    )

    try:
        final = await build_car_analyst_graph().ainvoke(
            {"input_messages": input_messages, "notes": [], "raw_notes": []},
            config=ctx.as_config(analysis_config=config, retry_delay=retry_delay),
        )
    except RunCancelledError as e:
        logger.info(f"🛑 Car analysis {ctx.request_id} cancelled: {e}")
        return AnalysisResult(type="cancelled", data=str(e))
    except Exception as e:
        logger.exception(f"❌ Car analysis {ctx.request_id} failed: {e}")
        return AnalysisResult(type="problem", data=PROBLEM_MESSAGE.format(error=e))

    question = final.get("clarification_question")
    if question:
        return AnalysisResult(type="clarifying_question", data=question)

    ctx.emitter.analysis_completed()
    report = final["report"]
    logger.info(f"✅ Car analysis {ctx.request_id} complete: {report.title} ({len(report.content)} chars)")
    return AnalysisResult(type="report", data=report)
