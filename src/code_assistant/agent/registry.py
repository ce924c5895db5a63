"""Tool registry built on Pydantic v2 models."""

from __future__ import annotations

from collections.abc import Callable
from time import perf_counter
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from code_assistant.errors import ToolError, ToolInputError, ToolNotFoundError
from code_assistant.types import ToolTrace

_logger = structlog.get_logger()

_MISSING_ERRORS = {"missing", "string_too_short"}


class ToolInput(BaseModel):
    """Base for tool argument models: unknown keys are ignored, ids may be numbers."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class ToolSpec(BaseModel):
    """Declarative tool specification for registration and validation."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    description: str
    args_schema: type[BaseModel]
    handler: Callable[[BaseModel], str]
    tags: list[str] = Field(default_factory=list)

    def invoke(self, payload: dict[str, Any]) -> str:
        try:
            data = self.args_schema.model_validate(payload)
        except ValidationError as exc:
            raise _input_error(self.name, exc) from exc
        return self.handler(data)

    def required_fields(self) -> list[str]:
        return [
            name for name, field in self.args_schema.model_fields.items() if field.is_required()
        ]

    def optional_fields(self) -> list[str]:
        return [
            name
            for name, field in self.args_schema.model_fields.items()
            if not field.is_required()
        ]


class ToolRegistry:
    """Stores tool specs and executes them by name.

    `execute` never raises: validation problems, unknown tools and handler
    failures come back as `"Error: ..."` text so a model can react to them as
    ordinary tool output.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolSpec] = {}
        self._observer: Callable[[ToolTrace], None] | None = None

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ValueError(f"Tool already registered: {spec.name}")
        self._tools[spec.name] = spec

    def set_observer(self, observer: Callable[[ToolTrace], None] | None) -> None:
        """Set an optional callback invoked after each tool execution."""
        self._observer = observer

    def get(self, name: str) -> ToolSpec:
        spec = self._tools.get(name)
        if spec is None:
            raise ToolNotFoundError(f"Unknown tool: {name}")
        return spec

    def execute(self, name: str, payload: dict[str, Any] | None = None) -> str:
        payload = payload or {}
        start = perf_counter()
        try:
            output = self.get(name).invoke(payload)
        except ToolError as exc:
            _logger.info("tool_error", tool=name, error=str(exc))
            output = f"Error: {exc}"
        except Exception as exc:
            _logger.exception("tool_failed", tool=name)
            output = f"Error: {name} failed: {exc}"
        latency_ms = (perf_counter() - start) * 1000.0

        if self._observer is not None:
            self._observer(
                ToolTrace(
                    name=name,
                    input_payload=payload,
                    output_preview=output[:320],
                    latency_ms=latency_ms,
                )
            )
        return output

    def specs(self, tag: str | None = None) -> list[ToolSpec]:
        if tag is None:
            return list(self._tools.values())
        return [spec for spec in self._tools.values() if tag in spec.tags]

    def describe(self, tag: str | None = None) -> str:
        """Plain-text tool catalog for prompting a text-only model."""
        lines = []
        for spec in self.specs(tag):
            line = f"- {spec.name}: {spec.description}"
            required = spec.required_fields()
            optional = spec.optional_fields()
            if required:
                line += f" Required: {', '.join(required)}."
            if optional:
                line += f" Optional: {', '.join(optional)}."
            lines.append(line)
        return "\n".join(lines)


def _input_error(tool_name: str, exc: ValidationError) -> ToolInputError:
    missing: list[str] = []
    details: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        if error.get("type") in _MISSING_ERRORS and location:
            missing.append(location)
        else:
            message = str(error.get("msg", "invalid value")).removeprefix("Value error, ")
            details.append(f"{location}: {message}" if location else message)
    if missing:
        return ToolInputError(tool_name, missing=missing)
    return ToolInputError(tool_name, detail="; ".join(details))
