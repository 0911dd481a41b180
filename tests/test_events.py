"""
Tests for the event emitter, sinks and SSE framing.
"""
import json

import pytest

from car_analysis.core.events import (
    ANALYSIS_UPDATE,
    DATA_PART,
    DONE,
    TEXT_DELTA,
    CollectingEventSink,
    EventEmitter,
    QueueEventSink,
    format_sse,
)


@pytest.fixture
def sink():
    return CollectingEventSink()


@pytest.fixture
def emitter(sink):
    return EventEmitter(sink)


class TestEventEmitter:
    def test_text_delta_skips_empty_text(self, emitter, sink):
        emitter.text_delta("")
        emitter.text_delta("Hello")
        assert sink.events == [{"type": TEXT_DELTA, "data": "Hello"}]

    def test_tool_events_are_transient_data_parts(self, emitter, sink):
        emitter.tool_start("web_search", {"q": "corolla"})
        emitter.tool_result("web_search", {"results": []})
        emitter.source_url("https://example.com/review", "Review")

        assert all(e["type"] == DATA_PART and e["transient"] for e in sink.events)
        assert sink.data_parts("tool-input-available")[0]["toolInput"] == {"q": "corolla"}
        assert sink.data_parts("tool-output-available")[0]["toolResult"] == {"results": []}
        assert sink.data_parts("source-url")[0]["url"] == "https://example.com/review"

    def test_running_update_gets_an_id_reused_on_completion(self, emitter, sink):
        update_id = emitter.analysis_update("Writing analysis brief", "writing", status="running")
        emitter.analysis_update("Writing analysis brief", "writing", status="completed",
                                message="brief", update_id=update_id)

        running, completed = sink.of_type(ANALYSIS_UPDATE)
        assert update_id
        assert running["id"] == completed["id"] == update_id
        assert running["data"]["status"] == "running"
        assert completed["data"] == {
            "title": "Writing analysis brief", "type": "writing", "status": "completed", "message": "brief",
        }

    def test_thought_without_status_has_no_id(self, emitter, sink):
        assert emitter.analysis_update("Thinking", "thoughts") == ""
        assert "id" not in sink.events[0]

    def test_started_and_completed_carry_timestamps(self, emitter, sink):
        emitter.analysis_started()
        emitter.analysis_completed()
        started, completed = sink.of_type(ANALYSIS_UPDATE)
        assert started["data"]["type"] == "started"
        assert completed["data"]["type"] == "completed"
        assert isinstance(completed["data"]["timestamp"], int)

    def test_document_stream_sequence(self, emitter, sink):
        emitter.document_start("doc-1", "2018 Toyota Corolla", kind="text", message_id="req-1")
        emitter.document_delta("# Report")
        emitter.document_finish()

        types = [e["type"] for e in sink.events]
        assert types == [
            "data-kind", "data-id", "data-messageId", "data-title", "data-clear",
            TEXT_DELTA, "data-finish",
        ]
        assert sink.events[1]["data"] == "doc-1"

    def test_collecting_sink_text(self, emitter, sink):
        emitter.text_delta("a")
        emitter.status("working")
        emitter.text_delta("b")
        assert sink.text() == "ab"


class TestQueueEventSink:
    @pytest.mark.asyncio
    async def test_iterates_until_closed_and_drops_late_events(self):
        queue_sink = QueueEventSink()
        queue_sink.write({"type": "a"})
        queue_sink.write({"type": "b"})
        queue_sink.close()
        queue_sink.write({"type": "late"})

        received = [event async for event in queue_sink]
        assert received == [{"type": "a"}, {"type": "b"}]


class TestFormatSse:
    def test_event_framing(self):
        framed = format_sse({"type": TEXT_DELTA, "data": "hi"})
        assert framed.startswith("data: ")
        assert framed.endswith("\n\n")
        assert json.loads(framed[len("data: "):]) == {"type": TEXT_DELTA, "data": "hi"}

    def test_done_marker(self):
        assert format_sse(DONE) == "data: [DONE]\n\n"
