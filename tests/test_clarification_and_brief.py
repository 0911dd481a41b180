"""
Tests for the clarification gate, the brief writer and status updates.
"""
import pytest
from langchain_core.messages import HumanMessage

from car_analysis.core.configuration import AnalysisConfig
from car_analysis.core.events import ANALYSIS_UPDATE
from car_analysis.core.models import AnalysisBrief, ClarifyWithUser, StatusUpdate
from car_analysis.orchestration.brief_writer import BRIEF_UPDATE_TITLE, write_analysis_brief
from car_analysis.orchestration.car_details import extract_car_details_from_messages, generate_analysis_title
from car_analysis.orchestration.clarification import DEFAULT_CLARIFICATION_QUESTION, clarify_with_user
from car_analysis.orchestration.status_updates import generate_status_update

from fakes import FakeChatModel, make_context


COROLLA_MESSAGES = [HumanMessage(content="Analyze a 2018 Toyota Corolla hybrid")]


class TestClarification:
    @pytest.mark.asyncio
    async def test_disabled_gate_makes_no_model_call(self, analysis_config):
        model = FakeChatModel()
        ctx, _ = make_context(model)
        config = analysis_config.model_copy(update={"allow_clarification": False})

        result = await clarify_with_user([HumanMessage(content="a car")], config, ctx)

        assert result.needs_clarification is False
        assert model.calls == []

    @pytest.mark.asyncio
    async def test_identified_car_passes(self, analysis_config):
        model = FakeChatModel(structured={ClarifyWithUser: ClarifyWithUser(need_clarification=False)})
        ctx, _ = make_context(model)

        result = await clarify_with_user(COROLLA_MESSAGES, analysis_config, ctx)

        assert result.needs_clarification is False
        (call,) = model.calls_of("structured")
        assert "Analyze a 2018 Toyota Corolla hybrid" in call[2][0].content

    @pytest.mark.asyncio
    async def test_question_returned_when_needed(self, analysis_config):
        model = FakeChatModel(structured={
            ClarifyWithUser: {"need_clarification": True, "question": "Which year is the Corolla?"},
        })
        ctx, _ = make_context(model)

        result = await clarify_with_user([HumanMessage(content="Toyota Corolla")], analysis_config, ctx)

        assert result.needs_clarification is True
        assert result.question == "Which year is the Corolla?"

    @pytest.mark.asyncio
    async def test_blank_question_uses_default(self, analysis_config):
        model = FakeChatModel(structured={ClarifyWithUser: {"need_clarification": True, "question": "  "}})
        ctx, _ = make_context(model)

        result = await clarify_with_user([HumanMessage(content="a car")], analysis_config, ctx)

        assert result.question == DEFAULT_CLARIFICATION_QUESTION

    @pytest.mark.asyncio
    async def test_model_errors_propagate(self, analysis_config):
        model = FakeChatModel(structured={ClarifyWithUser: RuntimeError("model down")})
        ctx, _ = make_context(model)

        with pytest.raises(RuntimeError, match="model down"):
            await clarify_with_user(COROLLA_MESSAGES, analysis_config, ctx)


class TestBriefWriter:
    @pytest.mark.asyncio
    async def test_brief_emits_running_then_completed_with_same_id(self, analysis_config):
        model = FakeChatModel(structured={AnalysisBrief: {
            "analysis_brief": "Evaluate the 2018 Corolla hybrid for a family buyer.",
            "title": "2018 Toyota Corolla Review",
            "car_details": {"make": "Toyota", "model": "Corolla", "year": 2018},
        }})
        ctx, sink = make_context(model)

        brief = await write_analysis_brief(COROLLA_MESSAGES, analysis_config, ctx)

        running, completed = sink.of_type(ANALYSIS_UPDATE)
        assert running["data"] == {"title": BRIEF_UPDATE_TITLE, "type": "writing", "status": "running"}
        assert completed["id"] == running["id"]
        assert completed["data"]["status"] == "completed"
        assert completed["data"]["message"] == brief.analysis_brief
        assert brief.title == "2018 Toyota Corolla Review"

    @pytest.mark.asyncio
    async def test_engine_and_title_filled_from_user_words(self, analysis_config):
        model = FakeChatModel(structured={AnalysisBrief: {
            "analysis_brief": "Evaluate the car.",
            "title": "",
            "car_details": {"make": "toyota", "model": "corolla", "year": 2018},
        }})
        ctx, _ = make_context(model)

        brief = await write_analysis_brief(COROLLA_MESSAGES, analysis_config, ctx)

        assert brief.car_details.engine == "hybrid"
        assert brief.title == "2018 Toyota Corolla - Comprehensive Analysis"


class TestCarDetails:
    def test_extracts_make_model_year_engine(self):
        details = extract_car_details_from_messages([HumanMessage(content="Is a 2016 VW Golf diesel a good buy?")])
        assert details == {"make": "volkswagen", "model": "golf", "year": 2016, "engine": "diesel"}

    def test_nothing_found(self):
        details = extract_car_details_from_messages([HumanMessage(content="hello there")])
        assert details == {"make": None, "model": None, "year": None, "engine": None}

    @pytest.mark.parametrize("args,expected", [
        (("toyota", "corolla", 2018), "2018 Toyota Corolla - Comprehensive Analysis"),
        (("toyota", "corolla", None), "Toyota Corolla - Car Analysis"),
        (("toyota", None, None), "Toyota - Car Analysis"),
        ((None, None, None), "Car Analysis Report"),
    ])
    def test_generate_title(self, args, expected):
        assert generate_analysis_title(*args) == expected


class TestStatusUpdates:
    @pytest.mark.asyncio
    async def test_disabled_returns_static_update(self, analysis_config):
        model = FakeChatModel()
        ctx, _ = make_context(model)

        update = await generate_status_update(
            "supervisor_coordination", COROLLA_MESSAGES, analysis_config, ctx,
            context="Coordinated analysis efforts", fallback_title="Planning specialist analyses",
        )

        assert update == StatusUpdate(title="Planning specialist analyses", message="Coordinated analysis efforts")
        assert model.calls == []

    @pytest.mark.asyncio
    async def test_model_update_is_truncated(self):
        model = FakeChatModel(structured={StatusUpdate: {"title": "T" * 80, "message": "M" * 300}})
        ctx, _ = make_context(model)

        update = await generate_status_update("analysis_completion", COROLLA_MESSAGES, AnalysisConfig(enable_status_updates=True), ctx)

        assert len(update.title) == 50
        assert len(update.message) == 200

    @pytest.mark.asyncio
    async def test_model_failure_degrades_to_static_text(self):
        model = FakeChatModel(structured={StatusUpdate: RuntimeError("rate limited")})
        ctx, _ = make_context(model)

        update = await generate_status_update(
            "analysis_compression", COROLLA_MESSAGES, AnalysisConfig(enable_status_updates=True), ctx,
            context="Compressed 4 messages", fallback_title="Summarised findings",
        )

        assert update.title == "Summarised findings"
        assert update.message == "Compressed 4 messages"
