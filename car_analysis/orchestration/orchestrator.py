"""
Lightweight orchestrator: one routed step per request.
"""
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from langchain_core.messages import BaseMessage
from pydantic import BaseModel, Field

from car_analysis.core.configuration import OrchestratorConfig
from car_analysis.core.context import RunContext
from car_analysis.core.messages import ConversationTurn, normalize
from car_analysis.orchestration.planner import run_planner
from car_analysis.orchestration.quick_specialists import (
    run_purchase_advice,
    run_reliability,
    run_running_cost,
    run_synthesis,
)
from car_analysis.orchestration.router import NextStep, RouteDecision, Router
from car_analysis.orchestration.streaming import StepResult
from car_analysis.services.stores import RunStore

logger = logging.getLogger(__name__)

FINALIZE_STATUS = "Analysis finalized."
STEP_LIMIT_STATUS = "Step limit reached for this question. Ask a new question to start another step."

StepHandler = Callable[[RunContext, OrchestratorConfig, Sequence[BaseMessage]], Awaitable[StepResult]]

STEP_HANDLERS: Dict[NextStep, StepHandler] = {
    NextStep.PLAN: run_planner,
    NextStep.PURCHASE_ADVICE: run_purchase_advice,
    NextStep.RUNNING_COST: run_running_cost,
    NextStep.RELIABILITY: run_reliability,
    NextStep.SYNTHESIS: run_synthesis,
}


def current_turn(turns: Sequence[ConversationTurn]) -> str:
    """Key of the latest user turn: its id, or its position when it has none."""
    for index in range(len(turns) - 1, -1, -1):
        if turns[index].role == "user":
            return turns[index].id or f"#{index}"
    return ""


class StepOutcome(BaseModel):
    next: NextStep
    reason: Optional[str] = None
    text: str = ""
    sources: List[Dict[str, str]] = Field(default_factory=list)


async def run_orchestrator_step(
    ctx: RunContext,
    router: Router,
    run_store: RunStore,
    config: OrchestratorConfig,
    run_id: Optional[str] = None,
) -> StepOutcome:
    """
    Route the conversation in ``ctx.messages`` and execute exactly one step.

    The step is recorded in ``run_store`` under ``run_id`` (the request id by
    default), tagged with the latest user turn. Once ``config.max_steps`` steps
    answer the same user turn, further requests for it finalize; a new user
    turn starts a fresh budget. Errors from the step are recorded and re-raised.
    """
    run_id = run_id or ctx.request_id
    turn = current_turn(ctx.messages)
    messages = normalize(ctx.messages)
    ctx.cancel_token.raise_if_cancelled()

    budget_exhausted = run_store.step_count(run_id, turn=turn) >= config.max_steps
    if budget_exhausted:
        decision = RouteDecision(next=NextStep.FINALIZE, reason="step_budget_exhausted")
    else:
        decision = await router.route(ctx, messages)
        if decision is None:
            decision = RouteDecision(next=NextStep.PLAN, reason="no_route")

    logger.info(f"🧭 Run {run_id}: step {decision.next.value} ({decision.reason})")

    if decision.next == NextStep.FINALIZE:
        ctx.emitter.status(STEP_LIMIT_STATUS if budget_exhausted else FINALIZE_STATUS)
        return StepOutcome(next=decision.next, reason=decision.reason)

    step_index = run_store.start_step(run_id, decision.next.value, turn=turn)
    try:
        result = await STEP_HANDLERS[decision.next](ctx, config, messages)
    except Exception as e:
        logger.error(f"❌ Step {decision.next.value} of run {run_id} failed: {e}")
        run_store.end_step(run_id, step_index, error=str(e))
        raise

    if result.sources:
        run_store.add_sources(run_id, result.sources)
    ctx.emitter.finish_step()
    run_store.end_step(run_id, step_index)

    return StepOutcome(next=decision.next, reason=decision.reason, text=result.text, sources=result.sources)
