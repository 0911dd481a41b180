"""
Tests for the lightweight orchestrator: one routed step per request.
"""
import pytest

from car_analysis.core.events import TEXT_DELTA
from car_analysis.core.messages import ConversationTurn
from car_analysis.orchestration.orchestrator import STEP_LIMIT_STATUS, current_turn, run_orchestrator_step
from car_analysis.orchestration.planner import PlannerTarget
from car_analysis.orchestration.quick_specialists import RELIABILITY_ASK
from car_analysis.orchestration.router import KeywordRouter, ModelRouter, NextStep, TwoTierRouter
from car_analysis.services.stores import InMemoryRunStore

from fakes import FakeChatModel, StubWebSearchTool, make_context, stub_registry


def router():
    return TwoTierRouter(KeywordRouter(), ModelRouter("gpt-4o-mini", timeout_seconds=0.5))


def user(text):
    return [ConversationTurn.user(text)]


class TestOrchestratorStep:
    @pytest.mark.asyncio
    async def test_running_cost_step_degrades_when_search_is_unavailable(self, orchestrator_config):
        model = FakeChatModel(streams=[["Fuel is about ", "1,200 EUR a year."]])
        ctx, sink = make_context(model, messages=user("What are the running costs of a 2018 Toyota Corolla?"))
        runs = InMemoryRunStore()

        outcome = await run_orchestrator_step(ctx, router(), runs, orchestrator_config, run_id="chat-1")

        assert outcome.next == NextStep.RUNNING_COST
        assert outcome.reason == "heuristic_running_cost"
        assert outcome.text == "Fuel is about 1,200 EUR a year."
        assert outcome.sources == []

        assert [p["toolName"] for p in sink.data_parts("tool-input-available")] == ["price_lookup", "web_search"]
        price, search = sink.data_parts("tool-output-available")
        assert price["toolResult"]["currency"] == "EUR"
        assert "error" in search["toolResult"]
        assert len(sink.data_parts("finish-step")) == 1

        (step,) = runs.steps("chat-1")
        assert step.step == "running_cost"
        assert step.error is None
        assert step.ended_at is not None

        # The failed search still leaves an empty slot in the grounding
        (call,) = model.calls_of("stream")
        assert '"search": {}' in call[2][0].content

    @pytest.mark.asyncio
    async def test_purchase_advice_collects_sources(self, orchestrator_config):
        web = StubWebSearchTool()
        model = FakeChatModel(
            structured={PlannerTarget: {"make": "Toyota", "model": "Corolla", "year": 2018}},
            streams=[["Good value."]],
        )
        ctx, sink = make_context(model, messages=user("Should I buy a 2018 Toyota Corolla?"), tools=stub_registry(web))
        runs = InMemoryRunStore()

        outcome = await run_orchestrator_step(ctx, router(), runs, orchestrator_config, run_id="chat-1")

        assert outcome.next == NextStep.PURCHASE_ADVICE
        assert web.queries == ["2018 Toyota Corolla review Ireland"]
        assert outcome.sources == [{"url": "https://example.ie/corolla-review", "title": "Corolla review"}]
        assert runs.sources("chat-1") == outcome.sources
        assert [p["url"] for p in sink.data_parts("source-url")] == ["https://example.ie/corolla-review"]
        assert [p["toolName"] for p in sink.data_parts("tool-input-available")] == [
            "spec_lookup", "price_lookup", "web_search",
        ]

    @pytest.mark.asyncio
    async def test_orchestrator_tag_runs_the_planner(self, orchestrator_config):
        model = FakeChatModel(
            structured={PlannerTarget: {
                "make": "Toyota",
                "model": "Corolla",
                "questions": ["Which year?", "Hybrid or petrol?", "Budget?", "Colour?"],
                "focus": ["efficiency"],
            }},
            streams=[["## Understanding", "\nA Toyota Corolla."]],
        )
        ctx, sink = make_context(model, messages=user("[orchestrator] I want a Corolla"))

        outcome = await run_orchestrator_step(ctx, router(), InMemoryRunStore(), orchestrator_config)

        assert outcome.next == NextStep.PLAN
        assert outcome.reason == "forced_by_ui"
        (state,) = sink.data_parts("planner-state")
        assert state["selectedCar"]["make"] == "Toyota"
        assert state["selectedCar"]["questions"] == ["Which year?", "Hybrid or petrol?", "Budget?"]
        assert sink.text() == "## Understanding\nA Toyota Corolla."

    @pytest.mark.asyncio
    async def test_reliability_without_a_car_asks_instead_of_calling_the_model(self, orchestrator_config):
        model = FakeChatModel()
        ctx, sink = make_context(model, messages=user("Any common issues I should watch for?"))

        outcome = await run_orchestrator_step(ctx, router(), InMemoryRunStore(), orchestrator_config)

        assert outcome.next == NextStep.RELIABILITY
        assert outcome.text == RELIABILITY_ASK
        assert [e["data"] for e in sink.of_type(TEXT_DELTA)] == [RELIABILITY_ASK]
        assert model.calls == []

    @pytest.mark.asyncio
    async def test_step_budget_finalizes(self, orchestrator_config):
        model = FakeChatModel()
        ctx, sink = make_context(model, messages=[ConversationTurn.user("Should I buy a Corolla?", turn_id="u1")])
        runs = InMemoryRunStore()
        for _ in range(orchestrator_config.max_steps):
            runs.end_step("chat-1", runs.start_step("chat-1", "plan", turn="u1"))

        outcome = await run_orchestrator_step(ctx, router(), runs, orchestrator_config, run_id="chat-1")

        assert outcome.next == NextStep.FINALIZE
        assert outcome.reason == "step_budget_exhausted"
        assert sink.data_parts("status")[0]["text"] == STEP_LIMIT_STATUS
        assert runs.step_count("chat-1") == orchestrator_config.max_steps
        assert model.calls == []

    @pytest.mark.asyncio
    async def test_new_question_after_step_budget_runs_a_step(self, orchestrator_config):
        runs = InMemoryRunStore()
        for _ in range(orchestrator_config.max_steps):
            runs.end_step("chat-1", runs.start_step("chat-1", "plan", turn="u1"))
        model = FakeChatModel(streams=[["Fuel is about ", "1,200 EUR a year."]])
        ctx, sink = make_context(model, messages=[
            ConversationTurn.user("Should I buy a Corolla?", turn_id="u1"),
            ConversationTurn.assistant("Here is a plan.", turn_id="a1"),
            ConversationTurn.user("What are the running costs of a 2018 Toyota Corolla?", turn_id="u2"),
        ])

        outcome = await run_orchestrator_step(ctx, router(), runs, orchestrator_config, run_id="chat-1")

        assert outcome.next == NextStep.RUNNING_COST
        assert outcome.text == "Fuel is about 1,200 EUR a year."
        assert sink.data_parts("status") == []
        assert runs.step_count("chat-1") == orchestrator_config.max_steps + 1
        assert runs.step_count("chat-1", turn="u2") == 1
        assert runs.steps("chat-1")[-1].turn == "u2"

    def test_current_turn_prefers_the_latest_user_turn(self):
        turns = [
            ConversationTurn.user("first", turn_id="u1"),
            ConversationTurn.assistant("reply"),
            ConversationTurn.user("second"),
            ConversationTurn.assistant("another reply"),
        ]

        assert current_turn(turns) == "#2"
        assert current_turn(turns[:2]) == "u1"
        assert current_turn([]) == ""

    @pytest.mark.asyncio
    async def test_failed_step_is_recorded_and_raised(self, orchestrator_config):
        model = FakeChatModel(streams=[[RuntimeError("stream broke")]])
        ctx, sink = make_context(model, messages=user("running cost of a Ford Focus"))
        runs = InMemoryRunStore()

        with pytest.raises(RuntimeError, match="stream broke"):
            await run_orchestrator_step(ctx, router(), runs, orchestrator_config, run_id="chat-1")

        (step,) = runs.steps("chat-1")
        assert step.error == "stream broke"
        assert sink.data_parts("finish-step") == []

    @pytest.mark.asyncio
    async def test_model_route_used_when_keywords_miss(self, orchestrator_config):
        model = FakeChatModel(structured={PlannerTarget: {}}, streams=[["Summary."]])
        ctx, _ = make_context(model, messages=user("Pull it all together please"))

        outcome = await run_orchestrator_step(ctx, router(), InMemoryRunStore(), orchestrator_config)

        # The fake answers the router without a choose call
        assert outcome.next == NextStep.PLAN
        assert outcome.reason == "no_choice"
