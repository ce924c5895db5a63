"""Exception hierarchy shared across indexing, retrieval and the tool loop."""

from __future__ import annotations


class CodeAssistantError(Exception):
    """Base class for all assistant errors."""


class ConfigurationError(CodeAssistantError, ValueError):
    """Invalid indexing or project configuration."""


class NoFilesIndexedError(ConfigurationError):
    """Raised when include/exclude rules admit zero files."""


class IndexNotFoundError(CodeAssistantError):
    """Persisted index artifacts are missing or unreadable."""


class IndexInitializationError(CodeAssistantError):
    """The index could neither be loaded nor created."""


class EmbeddingError(CodeAssistantError):
    """Remote embedding call failed (transport, status, timeout or shape)."""


class GenerationError(CodeAssistantError):
    """Completion model failed before any answer text was produced."""


class ToolError(CodeAssistantError):
    """Base class for failures reported back to the model as tool output."""


class ToolInputError(ToolError):
    """Tool input is missing required fields or carries invalid values."""

    def __init__(self, tool_name: str, missing: list[str] | None = None, detail: str | None = None) -> None:
        self.tool_name = tool_name
        self.missing = list(missing or [])
        self.detail = detail
        super().__init__(self._render())

    def _render(self) -> str:
        if self.missing:
            if len(self.missing) == 1:
                return f"{self.missing[0]} is required for {self.tool_name}"
            fields = ", ".join(self.missing[:-1]) + f" and {self.missing[-1]}"
            return f"{fields} are required for {self.tool_name}"
        return f"Invalid input for {self.tool_name}: {self.detail or 'unknown error'}"


class ToolNotFoundError(ToolError):
    """The requested tool is not registered."""


class RecordNotFoundError(ToolError):
    """A referenced user, ticket or task id does not exist."""
