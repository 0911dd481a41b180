"""
Clarification gate: stop the run and ask the user when the car is not
identified well enough to analyse.
"""
import logging
from typing import Sequence

from langchain_core.messages import BaseMessage, HumanMessage

from car_analysis.core.configuration import AnalysisConfig
from car_analysis.core.context import RunContext
from car_analysis.core.message_truncation import context_budget, truncate_messages
from car_analysis.core.messages import messages_to_string
from car_analysis.core.models import ClarificationResult, ClarifyWithUser
from car_analysis.orchestration.car_details import get_today_str
from car_analysis.prompts.analysis_prompts import ClarifyPrompt

logger = logging.getLogger(__name__)

DEFAULT_CLARIFICATION_QUESTION = "Clarification needed"

_prompt = ClarifyPrompt()


async def clarify_with_user(
    messages: Sequence[BaseMessage],
    config: AnalysisConfig,
    ctx: RunContext,
) -> ClarificationResult:
    """
    One structured call deciding whether make, model and year are known.

    Skipped entirely (no model call) when clarification is disabled. Model
    errors propagate; there is no retry at this layer.
    """
    if not config.allow_clarification:
        logger.info("Clarification disabled, skipping gate")
        return ClarificationResult(needs_clarification=False)

    prompt_messages = truncate_messages(
        [HumanMessage(content=_prompt.format(messages=messages_to_string(messages), date=get_today_str()))],
        context_budget(config.analysis_model, config.analysis_model_max_tokens),
    )

    model = ctx.model_selector(config.analysis_model, config.analysis_model_max_tokens)
    decision: ClarifyWithUser = await ctx.cancel_token.run(
        model.with_structured_output(ClarifyWithUser).ainvoke(prompt_messages)
    )

    if not decision.need_clarification:
        logger.info("✅ Clarification gate passed")
        return ClarificationResult(needs_clarification=False)

    question = (decision.question or "").strip() or DEFAULT_CLARIFICATION_QUESTION
    logger.info(f"❓ Clarification needed: {question[:100]}")
    return ClarificationResult(needs_clarification=True, question=question)
