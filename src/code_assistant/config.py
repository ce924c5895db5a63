"""Configuration models for the code assistant."""

from __future__ import annotations

import json
import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict

_SIZE_UNITS = {
    "B": 1,
    "KB": 1024,
    "MB": 1024 * 1024,
    "GB": 1024 * 1024 * 1024,
}
_SIZE_PATTERN = re.compile(r"^\s*(\d+)\s*([A-Za-z]+)\s*$")


def parse_size(value: str) -> int:
    """Convert a size string like ``"1MB"`` into bytes."""
    match = _SIZE_PATTERN.match(value)
    if not match:
        raise ValueError(f"Malformed size string: {value!r}")
    amount, unit = match.groups()
    multiplier = _SIZE_UNITS.get(unit.upper())
    if multiplier is None:
        raise ValueError(f"Unknown size unit {unit!r} in {value!r}")
    return int(amount) * multiplier


class _CamelModel(BaseModel):
    """Accepts both snake_case and the camelCase keys of project config files."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IndexingConfig(_CamelModel):
    """Controls which files are indexed and how they are chunked."""

    include_folders: list[str] = Field(default_factory=lambda: ["."])
    exclude_folders: list[str] = Field(
        default_factory=lambda: ["node_modules", ".git", "build", "dist", "venv", "__pycache__"]
    )
    include_file_types: list[str] = Field(
        default_factory=lambda: [".py", ".md", ".ts", ".js", ".json", ".txt"]
    )
    exclude_patterns: list[str] = Field(default_factory=list)
    max_file_size: str = "1MB"
    chunk_size: int = Field(default=400, ge=1)
    chunk_overlap: int = Field(default=100, ge=0)

    @field_validator("max_file_size")
    @classmethod
    def _check_size(cls, value: str) -> str:
        parse_size(value)
        return value

    @model_validator(mode="after")
    def _check_overlap(self) -> "IndexingConfig":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be less than chunk_size")
        return self

    @property
    def max_file_bytes(self) -> int:
        return parse_size(self.max_file_size)


class EmbeddingConfig(_CamelModel):
    """Remote embedding service settings and local fallback behavior."""

    enabled: bool = False
    model: str = "nomic-embed-text"
    base_url: str = "http://localhost:11434"
    timeout_seconds: float = Field(default=30.0, gt=0.0)
    request_delay_seconds: float = Field(default=0.05, ge=0.0)
    fallback: bool = False
    fallback_dimension: int = Field(default=256, ge=8)


class RetrievalConfig(_CamelModel):
    """Configures keyword/semantic candidate sizes and fusion."""

    max_results: int = Field(default=5, ge=1)
    rrf_k: int = Field(default=60, ge=1)
    candidate_multiplier: int = Field(default=2, ge=1)


class AgentConfig(_CamelModel):
    """Configures the tool-calling loop and conversation memory."""

    max_iterations: int = Field(default=5, ge=1)
    max_history: int = Field(default=50, ge=1)
    history_window: int = Field(default=5, ge=0)
    stop_on_repeated_tool: bool = False


class PromptConfig(_CamelModel):
    system: str = (
        "You are a helpful code assistant for the project \"{projectName}\". "
        "Provide clear and concise answers based on the available information."
    )
    language: str = "en"


class PathsConfig(_CamelModel):
    root: str = "."
    git: str = "."
    output: str = ".code-assistant"


class ProjectConfig(_CamelModel):
    """Top-level project configuration, loadable from a JSON file."""

    project_name: str = "project"
    project_description: str = ""
    paths: PathsConfig = Field(default_factory=PathsConfig)
    indexing: IndexingConfig = Field(default_factory=IndexingConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    prompt: PromptConfig = Field(default_factory=PromptConfig)

    @classmethod
    def from_file(cls, path: str | Path) -> "ProjectConfig":
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.model_validate(payload)

    @property
    def root_path(self) -> Path:
        return Path(self.paths.root)

    @property
    def output_path(self) -> Path:
        return Path(self.paths.root) / self.paths.output

    def system_prompt(self) -> str:
        return self.prompt.system.replace("{projectName}", self.project_name)


class AssistantSettings(BaseSettings):
    """Process-level settings read from the environment or `.env`."""

    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    assistant_config: str | None = None
    crm_data_path: str = "crm.json"
    tasks_data_path: str = "tasks.json"
    log_level: str = "INFO"
    log_json: bool = True

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    def load_project_config(self) -> ProjectConfig:
        if self.assistant_config:
            return ProjectConfig.from_file(self.assistant_config)
        return ProjectConfig()
