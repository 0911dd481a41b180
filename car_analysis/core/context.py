"""
Per-request execution context and cancellation.

A RunContext is created when a request arrives, handed to exactly one
pipeline invocation, and discarded when the request ends. LangGraph nodes
receive it through ``config["configurable"]["run_context"]``.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, AsyncIterator, Awaitable, List, Optional, TypeVar

from langchain_core.runnables import RunnableConfig

from car_analysis.core.errors import RunCancelledError
from car_analysis.core.guards import DEFAULT_RETRY_DELAY_SECONDS
from car_analysis.core.events import EventEmitter
from car_analysis.core.messages import ConversationTurn
from car_analysis.llm.provider import ModelSelector
from car_analysis.services.stores import DocumentStore
from car_analysis.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """
    Cancellation signal bound to one inbound request.

    Every model and tool call of a run is awaited through ``run()`` so that
    cancelling the token aborts whatever is in flight.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "client disconnected") -> None:
        if not self._event.is_set():
            self._reason = reason
            logger.info(f"🛑 Cancellation requested: {reason}")
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RunCancelledError(f"Run cancelled: {self._reason}")

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first; then raise RunCancelledError."""
        if self._event.is_set():
            # Close un-started coroutines so they do not warn about never being awaited
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            self.raise_if_cancelled()

        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            waiter.cancel()
            raise

        # Cancellation wins when both finished in the same tick
        if self._event.is_set():
            work.cancel()
            raise RunCancelledError(f"Run cancelled: {self._reason}")

        waiter.cancel()
        return work.result()

    async def stream(self, source: AsyncIterable[T]) -> AsyncIterator[T]:
        """Iterate ``source``, aborting between or during items once the token fires."""
        iterator = source.__aiter__()
        while True:
            try:
                item = await self.run(_anext(iterator))
            except StopAsyncIteration:
                return
            yield item


async def _anext(iterator: AsyncIterator[T]) -> T:
    return await iterator.__anext__()


@dataclass
class RunContext:
    """Everything one orchestrator invocation needs besides its configuration."""

    request_id: str
    emitter: EventEmitter
    model_selector: ModelSelector
    tools: ToolRegistry
    messages: List[ConversationTurn] = field(default_factory=list)
    cancel_token: CancellationToken = field(default_factory=CancellationToken)
    document_store: Optional[DocumentStore] = None

    def as_config(self, **extra: Any) -> RunnableConfig:
        """LangGraph config carrying this context."""
        configurable = {"run_context": self, "thread_id": self.request_id}
        configurable.update(extra)
        return {"configurable": configurable}


def get_run_context(config: RunnableConfig) -> RunContext:
    """Fetch the RunContext a graph node was invoked with."""
    try:
        return config["configurable"]["run_context"]
    except (KeyError, TypeError):
        raise RuntimeError("Graph invoked without a run_context in config['configurable']")


def get_run_settings(config: RunnableConfig):
    """(run_context, analysis_config, retry_delay) for a node of the car analysis graphs."""
    configurable = config["configurable"]
    return (
        get_run_context(config),
        configurable["analysis_config"],
        configurable.get("retry_delay", DEFAULT_RETRY_DELAY_SECONDS),
    )
