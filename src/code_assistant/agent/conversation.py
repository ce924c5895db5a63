"""Bounded in-memory conversation history."""

from __future__ import annotations

import time
import uuid

from code_assistant.types import Message, SearchResult


class ConversationManager:
    def __init__(self, max_messages: int = 50) -> None:
        self.max_messages = max_messages
        self.conversation_id = f"conv_{uuid.uuid4().hex[:12]}"
        self.created_at = time.time()
        self._messages: list[Message] = []

    def add_user_message(self, content: str) -> None:
        self._append(Message(role="user", content=content, timestamp=time.time()))

    def add_assistant_message(
        self, content: str, sources: list[SearchResult] | None = None
    ) -> None:
        self._append(
            Message(role="assistant", content=content, timestamp=time.time(), sources=sources)
        )

    def history(self, last_n: int = 5) -> str:
        """The last `last_n` messages as `User:` / `Assistant:` lines."""
        if last_n <= 0:
            return ""
        lines = []
        for message in self._messages[-last_n:]:
            speaker = "User" if message.role == "user" else "Assistant"
            lines.append(f"{speaker}: {message.content}")
        return "\n".join(lines)

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def clear(self) -> None:
        self._messages.clear()

    def summary(self) -> str:
        user_count = sum(1 for message in self._messages if message.role == "user")
        return (
            f"Conversation {self.conversation_id}: {len(self._messages)} messages, "
            f"{user_count} questions"
        )

    def _append(self, message: Message) -> None:
        self._messages.append(message)
        if len(self._messages) > self.max_messages:
            del self._messages[: len(self._messages) - self.max_messages]
