"""Parsing of inline `<tool>` directives emitted by text-only models."""

from __future__ import annotations

import json
import re
from typing import Protocol

from code_assistant.types import ToolCallRequest

_DIRECTIVE = re.compile(
    r"<tool>\s*(?P<name>[\w.-]+)\s*</tool>(?:\s*<input>(?P<input>.*?)</input>)?",
    flags=re.DOTALL,
)


class DirectiveParser(Protocol):
    """Extracts at most one tool request from a model response."""

    def parse(self, response: str) -> ToolCallRequest | None: ...

    def format_instructions(self) -> str: ...


class ToolDirectiveParser:
    """Markup protocol: `<tool>NAME</tool>` optionally followed by `<input>JSON</input>`.

    Only the first directive in a response is honored. Text before it is kept
    as partial answer text. Input that is not a JSON object is treated as no
    input.
    """

    def parse(self, response: str) -> ToolCallRequest | None:
        match = _DIRECTIVE.search(response)
        if match is None:
            return None
        return ToolCallRequest(
            tool_name=match.group("name"),
            tool_input=_parse_input(match.group("input")),
            preceding_text=response[: match.start()].strip(),
        )

    def format_instructions(self) -> str:
        return (
            "To use a tool, reply with:\n"
            "<tool>tool_name</tool>\n"
            '<input>{"key": "value"}</input>\n'
            "The <input> block is optional for tools without inputs. "
            "Request at most one tool per reply. "
            "If no tool is needed, answer directly without any <tool> tag."
        )


def _parse_input(raw: str | None) -> dict[str, object] | None:
    if raw is None or not raw.strip():
        return None
    try:
        payload = json.loads(raw)
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None
