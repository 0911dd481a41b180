"""
Brief writer: turn the conversation into the analysis brief every
specialist works from.
"""
import logging
from typing import Sequence

from langchain_core.messages import BaseMessage, HumanMessage

from car_analysis.core.configuration import AnalysisConfig
from car_analysis.core.context import RunContext
from car_analysis.core.message_truncation import context_budget, truncate_messages
from car_analysis.core.messages import messages_to_string
from car_analysis.core.models import AnalysisBrief
from car_analysis.orchestration.car_details import (
    extract_car_details_from_messages,
    generate_analysis_title,
    get_today_str,
)
from car_analysis.prompts.analysis_prompts import AnalysisBriefPrompt

logger = logging.getLogger(__name__)

BRIEF_UPDATE_TITLE = "Writing analysis brief"

_prompt = AnalysisBriefPrompt()


async def write_analysis_brief(
    messages: Sequence[BaseMessage],
    config: AnalysisConfig,
    ctx: RunContext,
) -> AnalysisBrief:
    """
    One structured call producing the brief, report title and car details.

    Emits a ``writing`` update as running before the call and completed,
    with the brief text, after it. Model errors propagate.
    """
    update_id = ctx.emitter.analysis_update(BRIEF_UPDATE_TITLE, "writing", status="running")

    prompt_messages = truncate_messages(
        [HumanMessage(content=_prompt.format(messages=messages_to_string(messages), date=get_today_str()))],
        context_budget(config.analysis_model, config.analysis_model_max_tokens),
    )

    model = ctx.model_selector(config.analysis_model, config.analysis_model_max_tokens)
    brief: AnalysisBrief = await ctx.cancel_token.run(
        model.with_structured_output(AnalysisBrief).ainvoke(prompt_messages)
    )

    # Fill gaps from the user's own words
    extracted = extract_car_details_from_messages(messages)
    details = brief.car_details
    if not details.engine and extracted["engine"]:
        details = details.model_copy(update={"engine": extracted["engine"]})
    title = brief.title.strip() or generate_analysis_title(details.make, details.model, details.year)
    brief = brief.model_copy(update={"car_details": details, "title": title})

    logger.info(f"📝 Analysis brief written for {details.label}: {title}")

    ctx.emitter.analysis_update(
        BRIEF_UPDATE_TITLE,
        "writing",
        status="completed",
        message=brief.analysis_brief,
        update_id=update_id,
    )
    return brief
