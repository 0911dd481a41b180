"""
Tests for the keyword and model routers.
"""
import asyncio

import pytest
from langchain_core.messages import HumanMessage

from car_analysis.core.errors import RunCancelledError
from car_analysis.orchestration.router import (
    KeywordRouter,
    ModelRouter,
    NextStep,
    RouteDecision,
    TwoTierRouter,
)

from fakes import FakeChatModel, ai_tool_calls, make_context, tool_call


def conversation(text):
    return [HumanMessage(content=text)]


class TestKeywordRouter:
    @pytest.mark.parametrize("text,step,reason", [
        ("[orchestrator] start over", NextStep.PLAN, "forced_by_ui"),
        ("What are the running costs of a 2018 Corolla?", NextStep.RUNNING_COST, "heuristic_running_cost"),
        ("Give me a cost analysis", NextStep.RUNNING_COST, "heuristic_running_cost"),
        ("Any common issues with the Golf?", NextStep.RELIABILITY, "heuristic_reliability"),
        ("Was there a recall on the 2015 Qashqai?", NextStep.RELIABILITY, "heuristic_reliability"),
        ("Should I buy a used Octavia?", NextStep.PURCHASE_ADVICE, "heuristic_purchase"),
        ("Compare the Civic and the Corolla", NextStep.PURCHASE_ADVICE, "heuristic_purchase"),
    ])
    def test_classify(self, text, step, reason):
        decision = KeywordRouter().classify(text)

        assert decision.next == step
        assert decision.reason == reason

    def test_no_keyword_means_no_opinion(self):
        assert KeywordRouter().classify("Hi, I need help with a car") is None

    def test_orchestrator_tag_beats_keywords(self):
        decision = KeywordRouter().classify("[orchestrator] reliability of a Corolla")

        assert decision.next == NextStep.PLAN

    @pytest.mark.asyncio
    async def test_routes_on_last_user_message(self):
        ctx, _ = make_context(FakeChatModel())
        messages = [HumanMessage(content="Should I buy a Corolla?"), HumanMessage(content="hello again")]

        assert await KeywordRouter().route(ctx, messages) is None


class TestModelRouter:
    @pytest.mark.asyncio
    async def test_uses_the_choose_call(self):
        model = FakeChatModel(tool_scripts={"choose": [
            ai_tool_calls(tool_call("choose", next="synthesis", reason="enough gathered")),
        ]})
        ctx, _ = make_context(model)

        decision = await ModelRouter("gpt-4o-mini").route(ctx, conversation("Wrap it up for me"))

        assert decision == RouteDecision(next=NextStep.SYNTHESIS, reason="enough gathered")
        assert model.bound[0].tool_choice == "any"
        assert model.bound[0].tool_names == ["choose"]

    @pytest.mark.asyncio
    async def test_no_choice_falls_back_to_plan(self):
        model = FakeChatModel(tool_scripts={"choose": [ai_tool_calls(content="not sure")]})
        ctx, _ = make_context(model)

        decision = await ModelRouter("gpt-4o-mini").route(ctx, conversation("hmm"))

        assert decision == RouteDecision(next=NextStep.PLAN, reason="no_choice")

    @pytest.mark.asyncio
    async def test_invalid_choice_falls_back_to_plan(self):
        model = FakeChatModel(tool_scripts={"choose": [
            ai_tool_calls(tool_call("choose", next="teleport")),
        ]})
        ctx, _ = make_context(model)

        decision = await ModelRouter("gpt-4o-mini").route(ctx, conversation("hmm"))

        assert decision.reason == "invalid_choice"
        assert decision.next == NextStep.PLAN

    @pytest.mark.asyncio
    async def test_timeout_falls_back_to_plan(self):
        model = FakeChatModel(tool_scripts={"choose": [lambda _: asyncio.sleep(1)]})
        ctx, _ = make_context(model)

        decision = await ModelRouter("gpt-4o-mini", timeout_seconds=0.01).route(ctx, conversation("hmm"))

        assert decision == RouteDecision(next=NextStep.PLAN, reason="timeout")

    @pytest.mark.asyncio
    async def test_model_error_falls_back_to_plan(self):
        model = FakeChatModel(tool_scripts={"choose": [RuntimeError("rate limited")]})
        ctx, _ = make_context(model)

        decision = await ModelRouter("gpt-4o-mini").route(ctx, conversation("hmm"))

        assert decision == RouteDecision(next=NextStep.PLAN, reason="error")

    @pytest.mark.asyncio
    async def test_cancellation_is_not_swallowed(self):
        model = FakeChatModel(tool_scripts={"choose": [ai_tool_calls(tool_call("choose", next="plan"))]})
        ctx, _ = make_context(model)
        ctx.cancel_token.cancel("client disconnected")

        with pytest.raises(RunCancelledError):
            await ModelRouter("gpt-4o-mini").route(ctx, conversation("hmm"))


class TestTwoTierRouter:
    @pytest.mark.asyncio
    async def test_keyword_hit_skips_the_model(self):
        model = FakeChatModel()
        ctx, _ = make_context(model)
        router = TwoTierRouter(KeywordRouter(), ModelRouter("gpt-4o-mini"))

        decision = await router.route(ctx, conversation("Is the Corolla known for reliability?"))

        assert decision.next == NextStep.RELIABILITY
        assert model.calls == []

    @pytest.mark.asyncio
    async def test_model_answers_when_keywords_miss(self):
        model = FakeChatModel(tool_scripts={"choose": [
            ai_tool_calls(tool_call("choose", next="finalize", reason="user said thanks")),
        ]})
        ctx, _ = make_context(model)
        router = TwoTierRouter(KeywordRouter(), ModelRouter("gpt-4o-mini"))

        decision = await router.route(ctx, conversation("Thanks, that's all"))

        assert decision.next == NextStep.FINALIZE
        assert len(model.calls_of("tools")) == 1
