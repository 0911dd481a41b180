"""
Final report generator.

Streams the report into a document artifact on the event stream and, once
the whole report is written, stores it in the document store.
"""
import logging
import uuid
from typing import Sequence

from langchain_core.messages import HumanMessage

from car_analysis.core.configuration import AnalysisConfig
from car_analysis.core.context import RunContext
from car_analysis.core.message_truncation import context_budget, truncate_messages
from car_analysis.core.messages import message_text
from car_analysis.core.models import AnalysisBrief, ReportResult
from car_analysis.orchestration.car_details import get_today_str
from car_analysis.prompts.analysis_prompts import FinalReportPrompt

logger = logging.getLogger(__name__)

REPORT_UPDATE_TITLE = "Writing final report"
REPORT_KIND = "text"

_prompt = FinalReportPrompt()


async def generate_final_report(
    brief: AnalysisBrief,
    notes: Sequence[str],
    config: AnalysisConfig,
    ctx: RunContext,
) -> ReportResult:
    update_id = ctx.emitter.analysis_update(REPORT_UPDATE_TITLE, "writing", status="running")

    title = brief.title or "Car Analysis Report"
    prompt = _prompt.format(
        title=title,
        brief=brief.analysis_brief,
        findings="\n".join(notes),
        date=get_today_str(),
    )
    messages = truncate_messages(
        [HumanMessage(content=prompt)],
        context_budget(config.final_report_model, config.final_report_model_max_tokens),
    )

    document_id = str(uuid.uuid4())
    ctx.emitter.document_start(document_id, title, kind=REPORT_KIND, message_id=ctx.request_id)

    model = ctx.model_selector(config.final_report_model, config.final_report_model_max_tokens)
    chunks = []
    async for chunk in ctx.cancel_token.stream(model.astream(messages)):
        text = message_text(chunk)
        if text:
            chunks.append(text)
            ctx.emitter.document_delta(text)

    content = "".join(chunks)
    ctx.emitter.document_finish()
    logger.info(f"📄 Final report written: {len(content)} chars")

    if ctx.document_store is not None:
        ctx.document_store.create_document(document_id, title, REPORT_KIND)
        ctx.document_store.update_document(document_id, content)

    ctx.emitter.analysis_update(REPORT_UPDATE_TITLE, "writing", status="completed", update_id=update_id)
    return ReportResult(id=document_id, title=title, kind=REPORT_KIND, content=content)
