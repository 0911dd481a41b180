"""
Progress events streamed to the client.

Events are plain dicts written to an EventSink in the order the run produces
them. The orchestrator only writes; it never reads events back.
"""
import asyncio
import json
import logging
import time
import uuid
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)

Event = Dict[str, Any]

# Event discriminators
TEXT_DELTA = "data-textDelta"
DATA_PART = "data-part"
ANALYSIS_UPDATE = "data-carAnalysisUpdate"
ANALYSIS_RESULT = "data-carAnalysisResult"
FINISH = "finish"
ERROR = "error"
DONE = "[DONE]"

TOOL_INPUT_AVAILABLE = "tool-input-available"
TOOL_OUTPUT_AVAILABLE = "tool-output-available"
SOURCE_URL = "source-url"
PLANNER_STATE = "planner-state"
FINISH_STEP = "finish-step"
STATUS = "status"


class EventSink(Protocol):
    def write(self, event: Event) -> None:
        ...


class CollectingEventSink:
    """Keeps every event in a list. Used by tests and non-streaming callers."""

    def __init__(self):
        self.events: List[Event] = []

    def write(self, event: Event) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> List[Event]:
        return [e for e in self.events if e.get("type") == event_type]

    def data_parts(self, part_type: str) -> List[Dict[str, Any]]:
        return [
            e["data"] for e in self.events
            if e.get("type") == DATA_PART and e.get("data", {}).get("type") == part_type
        ]

    def text(self) -> str:
        return "".join(e["data"] for e in self.of_type(TEXT_DELTA))


_CLOSED = object()


class QueueEventSink:
    """
    Async queue sink feeding a streaming response.

    The producer writes events and calls ``close()`` when the run ends; the
    consumer iterates with ``async for`` until the sink is closed.
    """

    def __init__(self):
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue()
        self._closed = False

    def write(self, event: Event) -> None:
        if self._closed:
            logger.debug(f"Dropping event written after close: {event.get('type')}")
            return
        self._queue.put_nowait(event)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[Event]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item


def format_sse(event: Any) -> str:
    """Frame one event (or the ``[DONE]`` marker) as a server-sent event."""
    payload = event if isinstance(event, str) else json.dumps(event, default=str)
    return f"data: {payload}\n\n"


class EventEmitter:
    """Typed helpers over an EventSink, shared by every pipeline step."""

    def __init__(self, sink: EventSink):
        self.sink = sink

    def _part(self, data: Dict[str, Any]) -> None:
        self.sink.write({"type": DATA_PART, "data": data, "transient": True})

    # Lightweight orchestrator events

    def text_delta(self, text: str) -> None:
        if text:
            self.sink.write({"type": TEXT_DELTA, "data": text})

    def tool_start(self, tool_name: str, tool_input: Any) -> None:
        self._part({"type": TOOL_INPUT_AVAILABLE, "toolName": tool_name, "toolInput": tool_input})

    def tool_result(self, tool_name: str, output: Any) -> None:
        self._part({"type": TOOL_OUTPUT_AVAILABLE, "toolName": tool_name, "toolResult": output})

    def source_url(self, url: str, title: Optional[str] = None) -> None:
        self._part({"type": SOURCE_URL, "url": url, "title": title})

    def planner_state(self, selected_car: Dict[str, Any]) -> None:
        self._part({"type": PLANNER_STATE, "selectedCar": selected_car})

    def finish_step(self) -> None:
        self._part({"type": FINISH_STEP})

    def status(self, text: str, level: str = "info") -> None:
        self._part({"type": STATUS, "text": text, "level": level})

    # Car analysis progress

    def analysis_update(
        self,
        title: str,
        update_type: str,
        status: Optional[str] = None,
        message: Optional[str] = None,
        update_id: Optional[str] = None,
        **extra: Any,
    ) -> str:
        """
        Write a carAnalysisUpdate. Returns the update id so a later call with
        the same id can move it from ``running`` to ``completed``.
        """
        data: Dict[str, Any] = {"title": title, "type": update_type}
        if status is not None:
            data["status"] = status
        if message is not None:
            data["message"] = message
        data.update(extra)

        event: Event = {"type": ANALYSIS_UPDATE, "data": data}
        if update_id is None and status == "running":
            update_id = str(uuid.uuid4())
        if update_id is not None:
            event["id"] = update_id
        self.sink.write(event)
        return update_id or ""

    def analysis_started(self, title: str = "Starting car analysis") -> None:
        self.analysis_update(title, "started", timestamp=int(time.time() * 1000))

    def analysis_completed(self, title: str = "Car analysis complete") -> None:
        self.analysis_update(title, "completed", timestamp=int(time.time() * 1000))

    def analysis_result(self, result: Dict[str, Any]) -> None:
        self.sink.write({"type": ANALYSIS_RESULT, "data": result})

    def error(self, text: str) -> None:
        self.sink.write({"type": ERROR, "errorText": text})

    def finish(self) -> None:
        self.sink.write({"type": FINISH})

    # Document artifact stream

    def document_start(self, document_id: str, title: str, kind: str = "text", message_id: Optional[str] = None) -> None:
        self.sink.write({"type": "data-kind", "data": kind, "transient": True})
        self.sink.write({"type": "data-id", "data": document_id, "transient": True})
        if message_id:
            self.sink.write({"type": "data-messageId", "data": message_id, "transient": True})
        self.sink.write({"type": "data-title", "data": title, "transient": True})
        self.sink.write({"type": "data-clear", "data": None, "transient": True})

    def document_delta(self, text: str) -> None:
        if text:
            self.sink.write({"type": TEXT_DELTA, "data": text, "transient": True})

    def document_finish(self) -> None:
        self.sink.write({"type": "data-finish", "data": None, "transient": True})
