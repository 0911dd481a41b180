"""
Chat model selection.

Pipelines never construct models themselves: they ask the run's model
selector for ``(model_id, max_tokens)``. The default selector builds
ChatOpenAI clients and keeps them for the life of the process.
"""
import logging
import threading
from typing import Callable, Dict, Tuple

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_openai import ChatOpenAI

from car_analysis.config import OPENAI_API_KEY

logger = logging.getLogger(__name__)

ModelSelector = Callable[[str, int], BaseChatModel]

DEFAULT_CONTEXT_WINDOW = 32000

MODEL_CONTEXT_WINDOWS: Dict[str, int] = {
    "gpt-4o": 128000,
    "gpt-4o-2024-08-06": 128000,
    "gpt-4o-mini": 128000,
    "claude-3-5-sonnet-20241022": 200000,
    "claude-3-5-haiku-20241022": 200000,
}


def get_model_context_window(model_id: str) -> int:
    return MODEL_CONTEXT_WINDOWS.get(model_id, DEFAULT_CONTEXT_WINDOW)


class ModelCache:
    """
    Process-scoped cache of chat model clients keyed by (model_id, max_tokens).

    Built lazily on first use and never torn down. The lock makes first
    initialization of a key single-flight when several requests race for it.
    """

    def __init__(self, api_key: str = OPENAI_API_KEY, temperature: float = 0):
        self._api_key = api_key
        self._temperature = temperature
        self._models: Dict[Tuple[str, int], BaseChatModel] = {}
        self._lock = threading.Lock()

    def __call__(self, model_id: str, max_tokens: int) -> BaseChatModel:
        key = (model_id, max_tokens)
        model = self._models.get(key)
        if model is not None:
            return model

        with self._lock:
            model = self._models.get(key)
            if model is None:
                if not self._api_key:
                    raise RuntimeError("OPENAI_API_KEY missing. Add it to .env to run the analysis agents.")
                logger.info(f"🤖 Initializing chat model {model_id} (max_tokens={max_tokens})")
                model = ChatOpenAI(
                    model=model_id,
                    temperature=self._temperature,
                    max_tokens=max_tokens,
                    api_key=self._api_key,
                )
                self._models[key] = model
            return model

    def __len__(self) -> int:
        return len(self._models)


_default_cache = ModelCache()


def default_model_selector(model_id: str, max_tokens: int) -> BaseChatModel:
    return _default_cache(model_id, max_tokens)
