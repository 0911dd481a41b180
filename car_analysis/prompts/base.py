import logging
import re
import unicodedata
from abc import ABC
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class PromptTemplate(ABC):
    """
    Base class for the pipelines' prompt templates.

    Fixed instructions live in ``TEMPLATE`` and are filled with
    ``str.format``. Conversation text and model-produced findings are never
    interpolated raw: subclasses wrap them with ``build_user_section()``,
    which sanitizes the text and fences it in a tagged block so it cannot
    break out of its place in the prompt.

    Usage:
        class MyPrompt(PromptTemplate):
            TEMPLATE = "Do the thing.\\n\\n{conversation}"

            def format(self, messages: str) -> str:
                return self.render(conversation=self.build_user_section("CONVERSATION", messages))
    """

    TEMPLATE: str = ""

    def __init__(self):
        if not self.TEMPLATE:
            raise ValueError(f"{self.__class__.__name__} defines no TEMPLATE")

    def render(self, **kwargs: Any) -> str:
        return self.TEMPLATE.format(**kwargs)

    def _sanitize_user_input(self, text: str) -> str:
        r"""
        Normalize untrusted text before it is placed in a prompt.

        1. Unicode NFKC normalization (homoglyphs)
        2. Null byte and control character removal (keeps \n, \r, \t)
        3. Runs of 3+ newlines collapsed to 2
        4. Section tags stripped so input cannot close its own block
        """
        if not isinstance(text, str):
            text = str(text)

        text = unicodedata.normalize("NFKC", text)
        text = "".join(char for char in text if ord(char) >= 32 or char in "\n\r\t")
        text = re.sub(r"\n{3,}", "\n\n", text)
        text = re.sub(r"</?[A-Z][A-Z0-9_]*>", "", text)
        return text.strip()

    def build_user_section(
        self,
        section_id: str,
        user_input: str,
        header: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        safe_section_id = re.sub(r"[^A-Z0-9_]", "", section_id.upper())
        if not safe_section_id:
            raise ValueError("section_id must contain alphanumeric characters")

        lines = [f"<{safe_section_id}>"]
        if header:
            lines.append(f"Header: {self._sanitize_user_input(header)}")
        if metadata:
            lines.append(
                "Metadata: " + ", ".join(
                    f"{self._sanitize_user_input(str(k))}={self._sanitize_user_input(str(v))}"
                    for k, v in metadata.items()
                )
            )
        if header or metadata:
            lines.append("---")
        lines.append(self._sanitize_user_input(user_input))
        lines.append(f"</{safe_section_id}>")
        return "\n".join(lines)
