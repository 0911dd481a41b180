"""
Conversation turns as persisted by the chat client, and their conversion
into LangChain messages.

A turn carries typed parts (text, tool calls, tool results, custom data
parts). ``normalize`` flattens turns into the message list the chat models
consume; it has no side effects and never raises on well-formed turns.
"""
import json
import logging
from typing import Any, Dict, List, Literal, Sequence, Union

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
    get_buffer_string,
)
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str = ""


class ToolCallPart(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["tool-call"] = "tool-call"
    tool_call_id: str = Field(alias="toolCallId")
    tool_name: str = Field(alias="toolName")
    input: Dict[str, Any] = Field(default_factory=dict)


class ToolResultPart(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["tool-result"] = "tool-result"
    tool_call_id: str = Field(alias="toolCallId")
    tool_name: str = Field(alias="toolName")
    output: Any = None


class DataPart(BaseModel):
    """Custom status/update payloads (``data-*``); never sent to a model."""

    type: str
    data: Any = None

    @field_validator("type")
    @classmethod
    def _data_prefix(cls, value: str) -> str:
        if not value.startswith("data-"):
            raise ValueError(f"data part type must start with 'data-', got '{value}'")
        return value


Part = Union[TextPart, ToolCallPart, ToolResultPart, DataPart]

_PART_TYPES = {
    "text": TextPart,
    "tool-call": ToolCallPart,
    "tool-result": ToolResultPart,
}


class ConversationTurn(BaseModel):
    """One persisted conversation turn. The orchestrator only appends turns."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    role: Literal["user", "assistant", "system", "tool"]
    parts: List[Part] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _content_as_text_part(cls, data: Any) -> Any:
        # Plain {"role", "content"} turns are accepted as a single text part
        if isinstance(data, dict) and "parts" not in data and isinstance(data.get("content"), str):
            data = dict(data)
            data["parts"] = [{"type": "text", "text": data.pop("content")}]
        return data

    @field_validator("parts", mode="before")
    @classmethod
    def _parse_parts(cls, value: Any) -> List[Part]:
        parsed: List[Part] = []
        for raw in value or []:
            if isinstance(raw, BaseModel):
                parsed.append(raw)
                continue
            part_type = str(raw.get("type", ""))
            if part_type in _PART_TYPES:
                parsed.append(_PART_TYPES[part_type].model_validate(raw))
            elif part_type.startswith("data-"):
                parsed.append(DataPart.model_validate(raw))
            else:
                logger.debug(f"Ignoring message part of type '{part_type}'")
        return parsed

    @property
    def text(self) -> str:
        return "\n".join(p.text for p in self.parts if isinstance(p, TextPart) and p.text)

    @classmethod
    def user(cls, text: str, turn_id: str = "") -> "ConversationTurn":
        return cls(id=turn_id, role="user", parts=[TextPart(text=text)])

    @classmethod
    def assistant(cls, text: str, turn_id: str = "") -> "ConversationTurn":
        return cls(id=turn_id, role="assistant", parts=[TextPart(text=text)])


def _serialize_output(output: Any) -> str:
    if isinstance(output, str):
        return output
    try:
        return json.dumps(output, default=str)
    except (TypeError, ValueError):
        return str(output)


def _tool_messages(parts: Sequence[Part]) -> List[ToolMessage]:
    return [
        ToolMessage(
            content=_serialize_output(part.output),
            tool_call_id=part.tool_call_id,
            name=part.tool_name,
        )
        for part in parts
        if isinstance(part, ToolResultPart)
    ]


def normalize(turns: Sequence[ConversationTurn]) -> List[BaseMessage]:
    """
    Flatten conversation turns into LangChain messages.

    - system -> SystemMessage, user -> HumanMessage
    - assistant -> AIMessage carrying its tool calls, followed by one
      ToolMessage per tool-result part on the same turn
    - tool -> one ToolMessage per tool-result part
    - data parts are dropped; turns left with nothing to say are skipped
    """
    messages: List[BaseMessage] = []

    for turn in turns:
        text = turn.text

        if turn.role == "system":
            if text:
                messages.append(SystemMessage(content=text))
        elif turn.role == "user":
            if text:
                messages.append(HumanMessage(content=text))
        elif turn.role == "assistant":
            tool_calls = [
                {"id": p.tool_call_id, "name": p.tool_name, "args": dict(p.input), "type": "tool_call"}
                for p in turn.parts
                if isinstance(p, ToolCallPart)
            ]
            if text or tool_calls:
                messages.append(AIMessage(content=text, tool_calls=tool_calls))
            messages.extend(_tool_messages(turn.parts))
        else:
            messages.extend(_tool_messages(turn.parts))

    return messages


def message_text(message: BaseMessage) -> str:
    """Text of a message whose content is a string or a list of content blocks."""
    content = message.content
    if isinstance(content, str):
        return content
    chunks = []
    for block in content:
        if isinstance(block, str):
            chunks.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            chunks.append(str(block.get("text", "")))
    return "".join(chunks)


def messages_to_string(messages: Sequence[BaseMessage]) -> str:
    """Render messages as ``Role: content`` lines for prompt interpolation."""
    return get_buffer_string(list(messages), human_prefix="User", ai_prefix="Assistant")


def last_user_text(messages: Sequence[BaseMessage]) -> str:
    for message in reversed(list(messages)):
        if isinstance(message, HumanMessage):
            return message_text(message)
    return ""
