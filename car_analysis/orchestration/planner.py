"""
Planner step: work out which car the user means before any analysis runs.
"""
import logging
from typing import List, Literal, Optional, Sequence

from langchain_core.messages import BaseMessage, SystemMessage
from pydantic import BaseModel, Field

from car_analysis.core.configuration import OrchestratorConfig
from car_analysis.core.context import RunContext
from car_analysis.core.message_truncation import context_budget, truncate_messages
from car_analysis.orchestration.streaming import StepResult, stream_text
from car_analysis.prompts.orchestrator_prompts import PlannerPrompt

logger = logging.getLogger(__name__)

MAX_PLANNER_QUESTIONS = 3

Focus = Literal["value", "performance", "efficiency", "comfort", "tech"]


class PlannerTarget(BaseModel):
    """The car the user is asking about, as far as the conversation tells."""

    make: Optional[str] = Field(default=None, description="Manufacturer, e.g. Toyota")
    model: Optional[str] = Field(default=None, description="Model name, e.g. Corolla")
    year: Optional[int] = Field(default=None, ge=1900, le=2100, description="Model year when given")
    questions: List[str] = Field(default_factory=list, description="Open questions for the user, at most three")
    focus: List[Focus] = Field(default_factory=list, description="What the user cares about most")


_prompt = PlannerPrompt()


async def extract_target(
    ctx: RunContext,
    config: OrchestratorConfig,
    messages: Sequence[BaseMessage],
) -> PlannerTarget:
    model = ctx.model_selector(config.model, config.model_max_tokens).with_structured_output(PlannerTarget)
    prompt = [SystemMessage(content=_prompt.TARGET_INSTRUCTION)] + truncate_messages(
        messages, context_budget(config.model, config.model_max_tokens)
    )
    target = await ctx.cancel_token.run(model.ainvoke(prompt))
    if len(target.questions) > MAX_PLANNER_QUESTIONS:
        target = target.model_copy(update={"questions": target.questions[:MAX_PLANNER_QUESTIONS]})
    return target


async def run_planner(ctx: RunContext, config: OrchestratorConfig, messages: Sequence[BaseMessage]) -> StepResult:
    target = await extract_target(ctx, config, messages)
    logger.info(f"🗺️ Planner target: {target.make} {target.model} {target.year} focus={target.focus}")
    ctx.emitter.planner_state(target.model_dump())

    model = ctx.model_selector(config.model, config.model_max_tokens)
    prompt = [SystemMessage(content=_prompt.format())] + truncate_messages(
        messages, context_budget(config.model, config.model_max_tokens)
    )
    text = await stream_text(ctx, model, prompt)
    return StepResult(text=text)
