"""
Token-budget estimation and recency-biased message truncation.

Tokens are approximated as ``ceil(chars / 4)``. Every model call in the
pipelines truncates its input with ``truncate_messages`` against the budget
returned by ``context_budget`` first.
"""
import logging
import math
from typing import List, Optional, Sequence

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage, ToolMessage

from car_analysis.llm.provider import get_model_context_window

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4
NON_TEXT_PART_CHARS = 200
MESSAGE_OVERHEAD_CHARS = 20
ELLIPSIS = "..."


def estimate_tokens(text: str) -> int:
    """Rough token estimate: ~4 chars per token for English."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def _content_chars(message: BaseMessage) -> int:
    content = message.content
    if isinstance(content, str):
        chars = len(content)
    else:
        chars = 0
        for block in content:
            if isinstance(block, str):
                chars += len(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                chars += len(str(block.get("text", "")))
            else:
                chars += NON_TEXT_PART_CHARS
    chars += NON_TEXT_PART_CHARS * len(getattr(message, "tool_calls", None) or [])
    return chars


def _message_chars(message: BaseMessage) -> int:
    return len(message.type) + _content_chars(message) + MESSAGE_OVERHEAD_CHARS


def calculate_messages_tokens(messages: Sequence[BaseMessage]) -> int:
    total_chars = sum(_message_chars(m) for m in messages)
    return math.ceil(total_chars / CHARS_PER_TOKEN)


def trim_prompt(text: str, max_tokens: int) -> str:
    """Cut ``text`` to ``max_tokens`` (estimated), marking the cut with an ellipsis."""
    if estimate_tokens(text) <= max_tokens:
        return text
    keep = max(max_tokens * CHARS_PER_TOKEN - len(ELLIPSIS), 0)
    return text[:keep] + ELLIPSIS


def _trim_message(message: BaseMessage, max_tokens: int) -> BaseMessage:
    """Hard-truncate one message's text so the whole message fits ``max_tokens``."""
    text = message.content if isinstance(message.content, str) else ""
    overhead = _message_chars(message) - _content_chars(message)
    overhead += NON_TEXT_PART_CHARS * len(getattr(message, "tool_calls", None) or [])
    allowed = max(max_tokens * CHARS_PER_TOKEN - overhead - len(ELLIPSIS), 0)
    return message.model_copy(update={"content": text[:allowed] + ELLIPSIS})


def _tool_result_as_text(message: ToolMessage) -> HumanMessage:
    content = message.content if isinstance(message.content, str) else str(message.content)
    return HumanMessage(content=f"Tool result ({message.name or message.tool_call_id}):\n{content}")


def truncate_messages(
    messages: Sequence[BaseMessage],
    max_tokens: int,
    preserve_system_message: bool = True,
) -> List[BaseMessage]:
    """
    Fit ``messages`` into ``max_tokens``.

    - Input that already fits is returned unchanged.
    - A leading system message is kept; the oldest other messages are dropped
      first, along with tool results left without their tool call. A tool result
      that is the only message left is kept as plain text instead.
    - Only when a single message is left and still too large is its text cut,
      ending in an ellipsis.
    - A system message that alone exceeds the budget is cut and returned alone.
    """
    messages = list(messages)
    if not messages or calculate_messages_tokens(messages) <= max_tokens:
        return messages

    system: Optional[BaseMessage] = None
    rest = messages
    if preserve_system_message and isinstance(messages[0], SystemMessage):
        system, rest = messages[0], messages[1:]

    remaining = max_tokens
    if system is not None:
        system_tokens = calculate_messages_tokens([system])
        if system_tokens >= max_tokens or not rest:
            logger.warning(f"✂️ System message alone ({system_tokens} tokens) exceeds budget {max_tokens}; trimming it")
            return [_trim_message(system, max_tokens)]
        remaining = max_tokens - system_tokens

    kept = list(rest)
    dropped = 0
    while len(kept) > 1 and calculate_messages_tokens(kept) > remaining:
        kept.pop(0)
        dropped += 1
        while len(kept) > 1 and isinstance(kept[0], ToolMessage):
            kept.pop(0)
            dropped += 1

    if isinstance(kept[0], ToolMessage):
        # Its tool call is gone; a leading tool result is rejected by the API
        kept[0] = _tool_result_as_text(kept[0])

    if calculate_messages_tokens(kept) > remaining:
        logger.warning(f"✂️ Hard-truncating last message to fit {remaining} tokens")
        kept[-1] = _trim_message(kept[-1], remaining)

    if dropped:
        logger.info(f"✂️ Dropped {dropped} oldest messages to fit {max_tokens} tokens")

    return ([system] if system is not None else []) + kept


def context_budget(model_id: str, max_output_tokens: int) -> int:
    """Input token budget: the model's context window minus its output reservation."""
    return max(get_model_context_window(model_id) - max_output_tokens, 1)
