"""
Model-written progress updates ("thoughts") for the car analysis stream.
"""
import logging
from typing import Optional, Sequence

from langchain_core.messages import BaseMessage, HumanMessage

from car_analysis.core.configuration import AnalysisConfig
from car_analysis.core.context import RunContext
from car_analysis.core.errors import RunCancelledError
from car_analysis.core.message_truncation import context_budget, trim_prompt
from car_analysis.core.messages import messages_to_string
from car_analysis.core.models import StatusUpdate
from car_analysis.prompts.analysis_prompts import StatusUpdatePrompt

logger = logging.getLogger(__name__)

STATUS_UPDATE_MAX_TOKENS = 200
MAX_TITLE_CHARS = 50
MAX_MESSAGE_CHARS = 200

_prompt = StatusUpdatePrompt()


async def generate_status_update(
    action: str,
    messages: Sequence[BaseMessage],
    config: AnalysisConfig,
    ctx: RunContext,
    context: Optional[str] = None,
    fallback_title: str = "Analysis in progress",
) -> StatusUpdate:
    """
    Ask the analysis model for a short title/message describing ``action``.

    Status updates are cosmetic: when they are switched off or the call
    fails, a static update built from ``fallback_title`` and ``context``
    is returned instead. Cancellation still propagates.
    """
    fallback = StatusUpdate(
        title=fallback_title[:MAX_TITLE_CHARS],
        message=(context or "")[:MAX_MESSAGE_CHARS],
    )
    if not config.enable_status_updates:
        return fallback

    budget = context_budget(config.analysis_model, STATUS_UPDATE_MAX_TOKENS)
    details = trim_prompt(messages_to_string(messages), budget // 2)
    if context:
        details = f"{details}\n\nAdditional context: {context}"

    try:
        model = ctx.model_selector(config.analysis_model, STATUS_UPDATE_MAX_TOKENS)
        structured = model.with_structured_output(StatusUpdate)
        update = await ctx.cancel_token.run(
            structured.ainvoke([HumanMessage(content=_prompt.format(action=action, context=details))])
        )
    except RunCancelledError:
        raise
    except Exception as e:
        logger.warning(f"⚠️ Status update for '{action}' failed, using static text: {e}")
        return fallback

    return StatusUpdate(
        title=update.title[:MAX_TITLE_CHARS],
        message=update.message[:MAX_MESSAGE_CHARS],
    )


async def emit_thought(
    action: str,
    messages: Sequence[BaseMessage],
    config: AnalysisConfig,
    ctx: RunContext,
    context: Optional[str] = None,
    fallback_title: str = "Analysis in progress",
) -> None:
    update = await generate_status_update(action, messages, config, ctx, context, fallback_title)
    ctx.emitter.analysis_update(update.title, "thoughts", status="completed", message=update.message)
