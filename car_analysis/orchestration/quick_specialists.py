"""
Single-turn specialists of the lightweight orchestrator.

Each step gathers grounding through the tool registry, reports tool
activity and sources to the client, then streams one model answer. A
failing tool never fails the step: its slot in the grounding is empty.
"""
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from langchain_core.messages import BaseMessage, SystemMessage

from car_analysis.core.configuration import OrchestratorConfig
from car_analysis.core.context import RunContext
from car_analysis.core.errors import ToolResult
from car_analysis.core.message_truncation import context_budget, truncate_messages
from car_analysis.orchestration.car_details import extract_car_details_from_messages
from car_analysis.orchestration.planner import extract_target
from car_analysis.orchestration.streaming import StepResult, call_tool, emit_sources, stream_text
from car_analysis.prompts.orchestrator_prompts import (
    PurchaseAdvicePrompt,
    ReliabilityPrompt,
    RunningCostPrompt,
    SynthesisPrompt,
)
from car_analysis.tools.base import ToolKind

logger = logging.getLogger(__name__)

RELIABILITY_ASK = "Which car should I check reliability for? Please include make, model and year."

_purchase_prompt = PurchaseAdvicePrompt()
_running_cost_prompt = RunningCostPrompt()
_reliability_prompt = ReliabilityPrompt()
_synthesis_prompt = SynthesisPrompt()


def _car_args(make: Optional[str], model: Optional[str], year: Optional[int]) -> Dict[str, Any]:
    return {"make": make or "", "model": model or "", "year": year}


def _search_query(car: Dict[str, Any], suffix: str) -> str:
    parts = [str(car["year"]) if car["year"] else "", car["make"], car["model"], suffix]
    return " ".join(p for p in parts if p)


def _grounding(sections: Dict[str, ToolResult]) -> str:
    """Render tool outputs for the prompt; failed tools contribute an empty result."""
    rendered = {}
    for name, result in sections.items():
        rendered[name] = result.output if result.ok else {}
    return json.dumps(rendered, default=str, indent=2)


def _prompt_messages(system: str, config: OrchestratorConfig, messages: Sequence[BaseMessage]) -> List[BaseMessage]:
    return [SystemMessage(content=system)] + truncate_messages(
        messages, context_budget(config.model, config.model_max_tokens)
    )


async def _answer(ctx: RunContext, config: OrchestratorConfig, system: str, messages: Sequence[BaseMessage]) -> str:
    model = ctx.model_selector(config.model, config.model_max_tokens)
    return await stream_text(ctx, model, _prompt_messages(system, config, messages))


def _heuristic_car(messages: Sequence[BaseMessage]) -> Dict[str, Any]:
    details = extract_car_details_from_messages(messages)
    return _car_args(details["make"], details["model"], details["year"])


async def run_purchase_advice(ctx: RunContext, config: OrchestratorConfig, messages: Sequence[BaseMessage]) -> StepResult:
    target = await extract_target(ctx, config, messages)
    car = _car_args(target.make, target.model, target.year)
    logger.info(f"🛒 Purchase advice for {car}")

    spec = await call_tool(ctx, ToolKind.SPEC_LOOKUP.value, car)
    price = await call_tool(ctx, ToolKind.PRICE_LOOKUP.value, car)
    reviews = await call_tool(ctx, ToolKind.WEB_SEARCH.value, {"q": _search_query(car, "review Ireland"), "k": 3})
    sources = emit_sources(ctx, [spec, price, reviews])

    grounding = _grounding({"spec": spec, "price": price, "reviews": reviews})
    text = await _answer(ctx, config, _purchase_prompt.format(grounding), messages)
    return StepResult(text=text, sources=sources)


async def run_running_cost(ctx: RunContext, config: OrchestratorConfig, messages: Sequence[BaseMessage]) -> StepResult:
    car = _heuristic_car(messages)
    logger.info(f"⛽ Running cost analysis for {car}")

    price = await call_tool(ctx, ToolKind.PRICE_LOOKUP.value, car)
    search = await call_tool(
        ctx,
        ToolKind.WEB_SEARCH.value,
        {"q": _search_query(car, "running costs fuel economy motor tax insurance Ireland"), "k": 5},
    )
    sources = emit_sources(ctx, [price, search])

    grounding = _grounding({"price": price, "search": search})
    text = await _answer(ctx, config, _running_cost_prompt.format(grounding), messages)
    return StepResult(text=text, sources=sources)


async def run_reliability(ctx: RunContext, config: OrchestratorConfig, messages: Sequence[BaseMessage]) -> StepResult:
    car = _heuristic_car(messages)
    if not car["make"]:
        ctx.emitter.text_delta(RELIABILITY_ASK)
        return StepResult(text=RELIABILITY_ASK)
    logger.info(f"🔧 Reliability analysis for {car}")

    search = await call_tool(
        ctx,
        ToolKind.WEB_SEARCH.value,
        {"q": _search_query(car, "reliability common problems recalls"), "k": 5},
    )
    sources = emit_sources(ctx, [search])

    grounding = _grounding({"search": search})
    text = await _answer(ctx, config, _reliability_prompt.format(grounding), messages)
    return StepResult(text=text, sources=sources)


async def run_synthesis(ctx: RunContext, config: OrchestratorConfig, messages: Sequence[BaseMessage]) -> StepResult:
    text = await _answer(ctx, config, _synthesis_prompt.format(), messages)
    return StepResult(text=text)
