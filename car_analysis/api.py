import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from car_analysis.config import (
    CORS_ALLOW_CREDENTIALS,
    CORS_ALLOW_HEADERS,
    CORS_ALLOW_METHODS,
    CORS_MAX_AGE,
    CORS_ORIGINS,
    ENABLE_PII_REDACTION,
    LOG_LEVEL,
)
from car_analysis.core.context import RunContext
from car_analysis.core.errors import RunCancelledError
from car_analysis.core.events import DONE, QueueEventSink, format_sse
from car_analysis.core.messages import ConversationTurn
from car_analysis.logging_config import get_logger, setup_logging
from car_analysis.orchestration.car_analyst import run_car_analyst
from car_analysis.orchestration.orchestrator import run_orchestrator_step
from car_analysis.services.analysis_service import AnalysisService

# Setup logging with PII redaction
setup_logging(log_level=LOG_LEVEL, enable_pii_redaction=ENABLE_PII_REDACTION)
logger = get_logger("car_analysis")

CHAT_ERROR_MESSAGE = "Sorry, something went wrong while working on that. Please try again."

_service: Optional[AnalysisService] = None


def get_service() -> AnalysisService:
    global _service
    if _service is None:
        _service = AnalysisService()
    return _service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown events."""
    logger.info("Starting Car Analysis API...")
    yield
    if _service is not None:
        await _service.close()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Car Analysis API",
    description="Multi-agent car analysis with streamed progress events",
    version="1.0.0",
    lifespan=lifespan,
)

logger.info(f"🔒 CORS:mode - Allowing origins: {CORS_ORIGINS}")
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=CORS_ALLOW_CREDENTIALS,
    allow_methods=CORS_ALLOW_METHODS,
    allow_headers=CORS_ALLOW_HEADERS,
    max_age=CORS_MAX_AGE,
)


class CarAnalysisRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    request_id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="requestId")
    messages: List[ConversationTurn] = Field(..., min_length=1)


class ChatRequest(BaseModel):
    id: str = Field(..., min_length=1)
    message: ConversationTurn
    trigger: Optional[str] = None


def _event_stream(
    ctx: RunContext,
    sink: QueueEventSink,
    run: Callable[[], Awaitable[None]],
) -> StreamingResponse:
    """
    Run ``run`` in the background and stream what it emits.

    The stream ends with a finish event and ``[DONE]``. If the client goes
    away first, the run's cancellation token fires.
    """

    async def produce() -> None:
        try:
            await run()
        finally:
            ctx.emitter.finish()
            sink.close()

    async def stream() -> AsyncIterator[str]:
        task = asyncio.create_task(produce())
        try:
            async for event in sink:
                yield format_sse(event)
            await task
            yield format_sse(DONE)
        finally:
            if not task.done():
                ctx.cancel_token.cancel("client disconnected")

    return StreamingResponse(
        stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@app.post("/api/car-analysis")
async def car_analysis(request: CarAnalysisRequest, service: AnalysisService = Depends(get_service)):
    """Run the full car analysis pipeline and stream its progress, report and result."""
    sink = QueueEventSink()
    ctx = service.new_context(request.request_id, sink, request.messages)
    logger.info(f"📨 Car analysis request {request.request_id} with {len(request.messages)} turns")

    async def run() -> None:
        result = await run_car_analyst(service.analysis_config, ctx)
        if result.type in ("problem", "clarifying_question"):
            ctx.emitter.text_delta(str(result.data))
        ctx.emitter.analysis_result(result.format())

    return _event_stream(ctx, sink, run)


@app.post("/api/chat")
async def chat(request: ChatRequest, service: AnalysisService = Depends(get_service)):
    """Append the user's turn, run one orchestrator step and stream it."""
    store = service.message_store
    history = store.get_messages(request.id)
    if not (request.message.id and any(turn.id == request.message.id for turn in history)):
        store.save_message(request.id, request.message)
    else:
        logger.info(f"Turn {request.message.id} already stored for chat {request.id} (trigger={request.trigger})")

    sink = QueueEventSink()
    ctx = service.new_context(str(uuid.uuid4()), sink, store.get_messages(request.id))

    async def run() -> None:
        try:
            outcome = await run_orchestrator_step(
                ctx, service.router, service.run_store, service.orchestrator_config, run_id=request.id
            )
        except RunCancelledError as e:
            logger.info(f"🛑 Chat {request.id} step cancelled: {e}")
            return
        except Exception as e:
            logger.exception(f"❌ Chat {request.id} step failed: {e}")
            ctx.emitter.error(CHAT_ERROR_MESSAGE)
            return
        if outcome.text:
            store.save_message(request.id, ConversationTurn.assistant(outcome.text, turn_id=str(uuid.uuid4())))

    return _event_stream(ctx, sink, run)


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}
