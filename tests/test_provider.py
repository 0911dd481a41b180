"""
Tests for chat model selection and context windows.
"""
import pytest

from car_analysis.core.message_truncation import context_budget
from car_analysis.llm.provider import ModelCache, get_model_context_window


class TestModelCache:
    def test_same_key_reuses_the_client(self):
        cache = ModelCache(api_key="sk-test-not-a-real-key-000000")

        first = cache("gpt-4o-mini", 2000)
        second = cache("gpt-4o-mini", 2000)
        other = cache("gpt-4o-mini", 4000)

        assert first is second
        assert other is not first
        assert len(cache) == 2

    def test_missing_api_key(self):
        with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
            ModelCache(api_key="")("gpt-4o", 4000)


class TestContextWindows:
    @pytest.mark.parametrize("model_id,window", [
        ("gpt-4o", 128000),
        ("gpt-4o-mini", 128000),
        ("claude-3-5-haiku-20241022", 200000),
        ("some-local-model", 32000),
    ])
    def test_window(self, model_id, window):
        assert get_model_context_window(model_id) == window

    def test_budget_reserves_output_tokens(self):
        assert context_budget("gpt-4o", 8000) == 120000
