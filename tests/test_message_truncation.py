"""
Tests for token estimation and recency-biased truncation.
"""
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage

from car_analysis.core.message_truncation import (
    calculate_messages_tokens,
    context_budget,
    estimate_tokens,
    trim_prompt,
    truncate_messages,
)
from car_analysis.llm.provider import get_model_context_window


class TestEstimates:
    def test_estimate_tokens_rounds_up(self):
        assert estimate_tokens("") == 0
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2

    def test_message_tokens_include_role_and_overhead(self):
        # "human" (5) + 8 chars + 20 overhead = 33 chars -> 9 tokens
        assert calculate_messages_tokens([HumanMessage(content="12345678")]) == 9

    def test_tool_calls_count_as_fixed_size(self):
        plain = AIMessage(content="")
        with_call = AIMessage(content="", tool_calls=[{"id": "c1", "name": "web_search", "args": {"q": "x"}}])
        assert calculate_messages_tokens([with_call]) - calculate_messages_tokens([plain]) == 50

    def test_trim_prompt(self):
        assert trim_prompt("short", 10) == "short"
        trimmed = trim_prompt("x" * 100, 5)
        assert trimmed.endswith("...")
        assert len(trimmed) == 20

    def test_context_budget_subtracts_output_reservation(self):
        window = get_model_context_window("gpt-4o")
        assert context_budget("gpt-4o", 4000) == window - 4000
        assert context_budget("unknown-model", 10**9) == 1


class TestTruncateMessages:
    def test_input_that_fits_is_unchanged(self):
        messages = [SystemMessage(content="sys"), HumanMessage(content="hello")]
        assert truncate_messages(messages, 1000) == messages

    def test_empty_input(self):
        assert truncate_messages([], 10) == []

    def test_oldest_messages_dropped_first_and_system_kept(self):
        system = SystemMessage(content="You analyse cars.")
        old = HumanMessage(content="a" * 400)
        middle = AIMessage(content="b" * 400)
        newest = HumanMessage(content="What about the 2018 Corolla?")
        budget = calculate_messages_tokens([system, newest]) + 5

        result = truncate_messages([system, old, middle, newest], budget)

        assert result[0] is system
        assert result[-1] is newest
        assert old not in result
        assert middle not in result
        assert calculate_messages_tokens(result) <= budget

    def test_orphaned_tool_results_dropped_with_their_call(self):
        call = AIMessage(content="", tool_calls=[{"id": "c1", "name": "web_search", "args": {"q": "corolla"}}])
        result_msg = ToolMessage(content="r" * 50, tool_call_id="c1")
        newest = HumanMessage(content="next question")
        budget = calculate_messages_tokens([newest]) + 2

        result = truncate_messages([call, result_msg, newest], budget)

        assert result == [newest]

    def test_last_tool_result_never_left_orphaned(self):
        system = SystemMessage(content="You are a car analyst.")
        call = AIMessage(content="", tool_calls=[
            {"id": "c1", "name": "web_search", "args": {"q": "corolla reliability"}},
            {"id": "c2", "name": "price_lookup", "args": {"make": "Toyota", "model": "Corolla"}},
        ])
        first = ToolMessage(content="a" * 4000, tool_call_id="c1")
        second = ToolMessage(content="b" * 4000, tool_call_id="c2")
        budget = calculate_messages_tokens([system, second]) + 10

        result = truncate_messages([system, call, first, second], budget)

        assert result[0] is system
        assert [type(m) for m in result] == [SystemMessage, HumanMessage]
        assert result[1].content.startswith("Tool result (c2):\nbbbb")
        assert calculate_messages_tokens(result) <= budget

    def test_single_oversized_message_is_hard_truncated(self):
        message = HumanMessage(content="x" * 1000)
        result = truncate_messages([message], 50)

        assert len(result) == 1
        assert result[0].content.endswith("...")
        assert calculate_messages_tokens(result) <= 50

    def test_oversized_system_message_returned_alone(self):
        system = SystemMessage(content="s" * 2000)
        result = truncate_messages([system, HumanMessage(content="hi")], 100)

        assert len(result) == 1
        assert isinstance(result[0], SystemMessage)
        assert result[0].content.endswith("...")
        assert calculate_messages_tokens(result) <= 100

    def test_system_message_not_preserved_when_disabled(self):
        system = SystemMessage(content="s" * 400)
        newest = HumanMessage(content="hi")
        result = truncate_messages([system, newest], calculate_messages_tokens([newest]) + 1,
                                   preserve_system_message=False)
        assert result == [newest]
