"""Single-turn text completion over LangChain chat models."""

from __future__ import annotations

from typing import Any, Protocol

from code_assistant.config import AssistantSettings
from code_assistant.errors import GenerationError


class CompletionModel(Protocol):
    """Opaque text-completion oracle: prompt in, text out."""

    def invoke(self, prompt: str) -> str: ...


class ChatModelCompletion:
    """Adapts a LangChain chat model to `invoke(prompt) -> str`."""

    def __init__(self, chat_model: Any) -> None:
        self.chat_model = chat_model

    def invoke(self, prompt: str) -> str:
        try:
            response = self.chat_model.invoke(prompt)
        except Exception as exc:
            raise GenerationError(f"Completion request failed: {exc}") from exc
        text = _message_text(response)
        if not text:
            raise GenerationError("Completion returned no content")
        return text


def create_completion_model(settings: AssistantSettings) -> ChatModelCompletion | None:
    if not settings.openai_api_key:
        return None

    from langchain_openai import ChatOpenAI

    return ChatModelCompletion(
        ChatOpenAI(model=settings.openai_model, temperature=0, api_key=settings.openai_api_key)
    )


def _message_text(response: Any) -> str:
    content = getattr(response, "content", response)
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict) and "text" in item:
                parts.append(str(item["text"]))
            else:
                parts.append(str(item))
        return " ".join(parts).strip()
    return str(content).strip()
