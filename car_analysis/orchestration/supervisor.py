"""
Supervisor loop.

A two-node LangGraph: ``supervisor`` asks the analysis model (tool use
forced) which specialists to run, ``supervisor_tools`` checks the exit
conditions and otherwise dispatches the selected specialists one after
another, then hands control back to ``supervisor``.
"""
import logging
from typing import Any, Dict, List, Literal, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_core.runnables import RunnableConfig
from langchain_core.tools import tool
from langgraph.graph import END, START, StateGraph

from car_analysis.core.configuration import AnalysisConfig
from car_analysis.core.context import RunContext, get_run_settings
from car_analysis.core.errors import ProtocolViolationError
from car_analysis.core.guards import DEFAULT_RETRY_DELAY_SECONDS
from car_analysis.core.message_truncation import context_budget, truncate_messages
from car_analysis.core.messages import message_text
from car_analysis.core.models import AnalysisBrief, SupervisorOutcome
from car_analysis.core.state import SupervisorState
from car_analysis.orchestration.car_details import get_today_str
from car_analysis.orchestration.specialist import SpecialistAgent, build_specialist_state
from car_analysis.orchestration.status_updates import emit_thought
from car_analysis.prompts.analysis_prompts import SupervisorPrompt

logger = logging.getLogger(__name__)

MIN_TOOL_NOTE_CHARS = 50
MIN_ASSISTANT_NOTE_CHARS = 100

EMPTY_COMPRESSION_MESSAGE = "Error analyzing: Maximum retries exceeded"
CAPACITY_EXCEEDED_MESSAGE = (
    "Error: Did not run this analysis as you have already exceeded the maximum number of "
    "concurrent specialists. Please try again with {limit} or fewer specialists."
)


@tool("analyze_purchase")
def analyze_purchase(analysis_topic: str) -> str:
    """Run the purchase specialist: price bands, value for money, trims, pros and cons, buy or not.

    Args:
        analysis_topic: What the specialist should focus on for this car
    """
    return analysis_topic


@tool("analyze_running_costs")
def analyze_running_costs(analysis_topic: str) -> str:
    """Run the running costs specialist: fuel, insurance, motor tax, servicing, depreciation.

    Args:
        analysis_topic: What the specialist should focus on for this car
    """
    return analysis_topic


@tool("analyze_reliability")
def analyze_reliability(analysis_topic: str) -> str:
    """Run the reliability specialist: common faults, recalls, durability, inspection points.

    Args:
        analysis_topic: What the specialist should focus on for this car
    """
    return analysis_topic


@tool("analysis_complete")
def analysis_complete(summary: str) -> str:
    """Signal that every analysis the brief needs has been done.

    Args:
        summary: One line summarising what was analysed
    """
    return summary


SPECIALIST_TOOLS = [analyze_purchase, analyze_running_costs, analyze_reliability]
SUPERVISOR_TOOLS = SPECIALIST_TOOLS + [analysis_complete]
SPECIALIST_TOOL_NAMES = {t.name for t in SPECIALIST_TOOLS}
COMPLETE_TOOL_NAME = analysis_complete.name

_prompt = SupervisorPrompt()


def get_notes_from_messages(messages: Sequence[BaseMessage]) -> List[str]:
    """Notes for the report: substantial tool results and substantial assistant text."""
    notes = []
    for message in messages:
        text = message_text(message).strip()
        if isinstance(message, ToolMessage) and len(text) > MIN_TOOL_NOTE_CHARS:
            notes.append(text)
        elif isinstance(message, AIMessage) and len(text) > MIN_ASSISTANT_NOTE_CHARS:
            notes.append(text)
    return notes


async def supervisor(state: SupervisorState, config: RunnableConfig) -> Dict[str, Any]:
    """COORDINATING: one forced-tool call to the analysis model."""
    ctx, analysis_config, _ = get_run_settings(config)
    ctx.cancel_token.raise_if_cancelled()

    iterations = state.get("analysis_iterations", 0)
    logger.info(
        f"🧭 Supervisor iteration {iterations + 1} "
        f"(max {analysis_config.max_specialist_iterations}, {len(state['supervisor_messages'])} messages)"
    )

    messages = truncate_messages(
        state["supervisor_messages"],
        context_budget(analysis_config.analysis_model, analysis_config.analysis_model_max_tokens),
    )
    model = ctx.model_selector(
        analysis_config.analysis_model, analysis_config.analysis_model_max_tokens
    ).bind_tools(SUPERVISOR_TOOLS, tool_choice="any")

    response = await ctx.cancel_token.run(model.ainvoke(messages))
    tool_calls = list(getattr(response, "tool_calls", None) or [])
    if not tool_calls:
        logger.error("❌ Supervisor answered without tool calls although tool use was forced")
        raise ProtocolViolationError("Expected tool calls from the supervisor, but the model returned none")

    await emit_thought(
        "supervisor_coordination",
        messages,
        analysis_config,
        ctx,
        context=message_text(response) or "Coordinated analysis efforts",
        fallback_title="Planning specialist analyses",
    )

    return {
        "supervisor_messages": [response],
        "pending_tool_calls": tool_calls,
        "analysis_iterations": iterations + 1,
    }


async def supervisor_tools(state: SupervisorState, config: RunnableConfig) -> Dict[str, Any]:
    """Exit checks, then DISPATCHING of the accepted specialist calls."""
    ctx, analysis_config, retry_delay = get_run_settings(config)

    iterations = state.get("analysis_iterations", 0)
    calls = state.get("pending_tool_calls") or []
    messages = state["supervisor_messages"]
    recognized = [c for c in calls if c["name"] in SPECIALIST_TOOL_NAMES or c["name"] == COMPLETE_TOOL_NAME]

    exceeded_iterations = iterations > analysis_config.max_specialist_iterations
    completed = any(c["name"] == COMPLETE_TOOL_NAME for c in calls)

    if exceeded_iterations or not recognized or completed:
        reason = "iteration cap" if exceeded_iterations else ("no tool calls" if not recognized else "analysis_complete")
        logger.info(f"🏁 Supervisor done after {iterations} iterations ({reason})")
        return {"notes": get_notes_from_messages(messages), "done": True, "pending_tool_calls": []}

    specialist_calls = [c for c in calls if c["name"] in SPECIALIST_TOOL_NAMES]
    limit = analysis_config.max_concurrent_specialists
    accepted = specialist_calls[:limit]
    overflow = specialist_calls[limit:]
    unknown = [c for c in calls if c not in recognized]

    if overflow:
        logger.warning(f"⚠️ Rejecting {len(overflow)} specialist calls over the concurrency cap of {limit}")

    await emit_thought(
        "continuing_specialist_analysis",
        messages,
        analysis_config,
        ctx,
        context=f"Running specialist analysis: [{', '.join(c['name'] for c in accepted)}]",
        fallback_title="Running specialist analyses",
    )

    brief: AnalysisBrief = state["brief"]
    agent = SpecialistAgent(analysis_config, ctx, retry_delay=retry_delay)
    tool_messages: List[ToolMessage] = []
    compressed: List[str] = []
    raw_parts: List[str] = []

    # Sequential on purpose: one specialist's events finish before the next starts
    for call in accepted:
        ctx.cancel_token.raise_if_cancelled()
        specialist_state = build_specialist_state(
            call["name"], str((call.get("args") or {}).get("analysis_topic", "")), brief, analysis_config
        )
        output = await agent.execute(specialist_state, brief)
        tool_messages.append(ToolMessage(
            content=output.compressed_analysis or EMPTY_COMPRESSION_MESSAGE,
            tool_call_id=call["id"],
            name=call["name"],
        ))
        if output.compressed_analysis:
            compressed.append(output.compressed_analysis)
        raw_parts.append(output.raw_notes)

    for call in overflow:
        tool_messages.append(ToolMessage(
            content=CAPACITY_EXCEEDED_MESSAGE.format(limit=limit),
            tool_call_id=call["id"],
            name=call["name"],
        ))

    for call in unknown:
        tool_messages.append(ToolMessage(
            content=f"Error: '{call['name']}' is not a valid tool. Use one of: "
                    f"{', '.join(sorted(SPECIALIST_TOOL_NAMES | {COMPLETE_TOOL_NAME}))}.",
            tool_call_id=call["id"],
            name=call["name"],
        ))

    return {
        "supervisor_messages": tool_messages,
        "notes": list(state.get("notes", [])) + compressed,
        "raw_notes": list(state.get("raw_notes", [])) + ["\n".join(raw_parts)],
        "dispatched": state.get("dispatched", 0) + len(accepted),
        "pending_tool_calls": [],
    }


def route_after_tools(state: SupervisorState) -> Literal["supervisor", "__end__"]:
    return END if state.get("done") else "supervisor"


def build_supervisor_graph():
    graph = StateGraph(SupervisorState)
    graph.add_node("supervisor", supervisor)
    graph.add_node("supervisor_tools", supervisor_tools)
    graph.add_edge(START, "supervisor")
    graph.add_edge("supervisor", "supervisor_tools")
    graph.add_conditional_edges("supervisor_tools", route_after_tools, {"supervisor": "supervisor", END: END})
    return graph.compile()


def initial_supervisor_messages(brief: AnalysisBrief, config: AnalysisConfig) -> List[BaseMessage]:
    details = brief.car_details
    return [
        SystemMessage(content=_prompt.format(
            date=get_today_str(),
            max_concurrent_specialists=config.max_concurrent_specialists,
        )),
        HumanMessage(content=f"Car: {details.label}\n\nAnalysis brief:\n{brief.analysis_brief}"),
    ]


async def run_supervisor(
    brief: AnalysisBrief,
    config: AnalysisConfig,
    ctx: RunContext,
    retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
) -> SupervisorOutcome:
    """Run the loop to completion and return the collected notes."""
    initial: SupervisorState = {
        "supervisor_messages": initial_supervisor_messages(brief, config),
        "brief": brief,
        "analysis_iterations": 0,
        "pending_tool_calls": [],
        "notes": [],
        "raw_notes": [],
        "dispatched": 0,
        "done": False,
    }
    run_config = ctx.as_config(analysis_config=config, retry_delay=retry_delay)
    # Two nodes per iteration, plus the terminating iteration
    run_config["recursion_limit"] = 2 * (config.max_specialist_iterations + 1) + 2

    final = await build_supervisor_graph().ainvoke(initial, config=run_config)

    outcome = SupervisorOutcome(
        notes=final.get("notes", []),
        raw_notes=[n for n in final.get("raw_notes", []) if n],
        iterations=final.get("analysis_iterations", 0),
        dispatched=final.get("dispatched", 0),
    )
    logger.info(
        f"📋 Supervisor finished: {outcome.iterations} iterations, "
        f"{outcome.dispatched} specialists, {len(outcome.notes)} notes"
    )
    return outcome
