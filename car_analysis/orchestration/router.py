"""
Routing for the lightweight orchestrator.

Two tiers behind one Router interface: a keyword classifier answers common
phrasings without a model call, and the model router handles the rest.
The model router never stalls a turn: on timeout or error it routes to
``plan``.
"""
import asyncio
import logging
from enum import Enum
from typing import List, Optional, Protocol, Sequence, Tuple

from langchain_core.messages import BaseMessage, SystemMessage
from langchain_core.tools import tool
from pydantic import BaseModel, Field, ValidationError

from car_analysis.config import ROUTER_TIMEOUT_SECONDS
from car_analysis.core.context import RunContext
from car_analysis.core.errors import RunCancelledError
from car_analysis.core.message_truncation import context_budget, truncate_messages
from car_analysis.core.messages import last_user_text
from car_analysis.prompts.orchestrator_prompts import RouterPrompt

logger = logging.getLogger(__name__)

ORCHESTRATOR_TAG = "[orchestrator]"
ROUTER_MAX_TOKENS = 200


class NextStep(str, Enum):
    PLAN = "plan"
    PURCHASE_ADVICE = "purchase_advice"
    RUNNING_COST = "running_cost"
    RELIABILITY = "reliability"
    SYNTHESIS = "synthesis"
    FINALIZE = "finalize"


class RouteDecision(BaseModel):
    next: NextStep = Field(description="The next orchestrator step")
    reason: Optional[str] = Field(default=None, description="Short reason for the choice")


@tool("choose", args_schema=RouteDecision)
def choose(next: NextStep, reason: Optional[str] = None) -> dict:
    """Select the next orchestrator step."""
    return {"next": next, "reason": reason}


class Router(Protocol):
    async def route(self, ctx: RunContext, messages: Sequence[BaseMessage]) -> Optional[RouteDecision]:
        """Return a decision, or None when this router has no opinion."""
        ...


class KeywordRouter:
    """Deterministic first tier: explicit tags and common phrasings in the last user message."""

    RULES: List[Tuple[NextStep, str, Tuple[str, ...]]] = [
        (NextStep.RUNNING_COST, "heuristic_running_cost", ("running cost", "cost analysis")),
        (NextStep.RELIABILITY, "heuristic_reliability", ("reliability", "common issues", "recall")),
        (NextStep.PURCHASE_ADVICE, "heuristic_purchase", ("purchase advice", "should i buy", "compare")),
    ]

    async def route(self, ctx: RunContext, messages: Sequence[BaseMessage]) -> Optional[RouteDecision]:
        return self.classify(last_user_text(messages))

    def classify(self, text: str) -> Optional[RouteDecision]:
        if ORCHESTRATOR_TAG in text:
            return RouteDecision(next=NextStep.PLAN, reason="forced_by_ui")
        lowered = text.lower()
        for step, reason, keywords in self.RULES:
            if any(keyword in lowered for keyword in keywords):
                return RouteDecision(next=step, reason=reason)
        return None


class ModelRouter:
    """Second tier: one forced ``choose`` tool call, bounded by a timeout."""

    def __init__(
        self,
        model_id: str,
        max_tokens: int = ROUTER_MAX_TOKENS,
        timeout_seconds: float = ROUTER_TIMEOUT_SECONDS,
    ):
        self.model_id = model_id
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds
        self._prompt = RouterPrompt()

    async def _decide(self, ctx: RunContext, messages: Sequence[BaseMessage]) -> RouteDecision:
        model = ctx.model_selector(self.model_id, self.max_tokens).bind_tools([choose], tool_choice="any")
        prompt = [SystemMessage(content=self._prompt.format())] + truncate_messages(
            messages, context_budget(self.model_id, self.max_tokens)
        )
        response = await model.ainvoke(prompt)

        pick = next((c["args"] for c in (response.tool_calls or []) if c["name"] == choose.name), None)
        if pick is None:
            return RouteDecision(next=NextStep.PLAN, reason="no_choice")
        try:
            return RouteDecision.model_validate(pick)
        except ValidationError:
            logger.warning(f"⚠️ Router returned an invalid choice: {pick}")
            return RouteDecision(next=NextStep.PLAN, reason="invalid_choice")

    async def route(self, ctx: RunContext, messages: Sequence[BaseMessage]) -> RouteDecision:
        try:
            return await asyncio.wait_for(
                ctx.cancel_token.run(self._decide(ctx, messages)),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(f"⏱️ Router timed out after {self.timeout_seconds}s, falling back to plan")
            return RouteDecision(next=NextStep.PLAN, reason="timeout")
        except RunCancelledError:
            raise
        except Exception as e:
            logger.warning(f"⚠️ Router failed, falling back to plan: {e}")
            return RouteDecision(next=NextStep.PLAN, reason="error")


class TwoTierRouter:
    """Ask ``fast`` first; fall back to ``fallback`` when it has no answer."""

    def __init__(self, fast: Router, fallback: Router):
        self.fast = fast
        self.fallback = fallback

    async def route(self, ctx: RunContext, messages: Sequence[BaseMessage]) -> RouteDecision:
        decision = await self.fast.route(ctx, messages)
        if decision is not None:
            logger.info(f"🧭 Fast route: {decision.next.value} ({decision.reason})")
            return decision
        decision = await self.fallback.route(ctx, messages)
        if decision is None:
            decision = RouteDecision(next=NextStep.PLAN, reason="no_route")
        logger.info(f"🧭 Model route: {decision.next.value} ({decision.reason})")
        return decision


def build_default_router(model_id: str, timeout_seconds: float = ROUTER_TIMEOUT_SECONDS) -> TwoTierRouter:
    return TwoTierRouter(KeywordRouter(), ModelRouter(model_id, timeout_seconds=timeout_seconds))
