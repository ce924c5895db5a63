"""Facade wiring indexing, retrieval, tools and the orchestrator together."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog

from code_assistant.agent.classifier import IntentClassifier
from code_assistant.agent.conversation import ConversationManager
from code_assistant.agent.orchestrator import ToolCallingOrchestrator
from code_assistant.agent.registry import ToolRegistry
from code_assistant.agent.tools import register_builtin_tools
from code_assistant.config import AssistantSettings, ProjectConfig
from code_assistant.errors import CodeAssistantError
from code_assistant.ingest.embedder import EmbeddingClient
from code_assistant.ingest.pipeline import ProjectIndexer, load_or_create_index
from code_assistant.llm import CompletionModel, create_completion_model
from code_assistant.obs.tracing import TraceStore
from code_assistant.retrieval.chunk_store import ChunkStore
from code_assistant.retrieval.retriever import HybridRetriever
from code_assistant.services.crm import CRMStore
from code_assistant.services.git import GitHelper
from code_assistant.services.tasks import TaskStore
from code_assistant.types import AnswerWithSources, IndexStats, Message, SearchResult

_logger = structlog.get_logger()


class CodeAssistant:
    """One project, one index, one conversation.

    `initialize()` must run before anything else: it loads the persisted
    index or builds it, then wires the retriever, tool registry and
    orchestrator. Questions are processed one at a time.
    """

    def __init__(
        self,
        config: ProjectConfig,
        *,
        llm: CompletionModel | None = None,
        embedding_client: EmbeddingClient | None = None,
        crm: CRMStore | None = None,
        tasks: TaskStore | None = None,
        git: GitHelper | None = None,
        trace_store: TraceStore | None = None,
    ) -> None:
        self.config = config
        self.llm = llm
        self.embedding_client = embedding_client
        self.git = git or GitHelper(Path(config.paths.root) / config.paths.git)
        self.crm = crm
        self.tasks = tasks
        self.trace_store = trace_store or TraceStore()
        self.tool_registry = ToolRegistry()
        register_builtin_tools(self.tool_registry, git=self.git, crm=crm, tasks=tasks)
        self.conversation = ConversationManager(config.agent.max_history)

        self._store: ChunkStore | None = None
        self._retriever: HybridRetriever | None = None
        self._orchestrator: ToolCallingOrchestrator | None = None

    @classmethod
    def from_settings(cls, settings: AssistantSettings) -> "CodeAssistant":
        config = settings.load_project_config()
        return cls(
            config,
            llm=create_completion_model(settings),
            embedding_client=EmbeddingClient.from_config(config.embedding),
            crm=CRMStore(settings.crm_data_path),
            tasks=TaskStore(settings.tasks_data_path),
        )

    @property
    def initialized(self) -> bool:
        return self._orchestrator is not None

    def initialize(self) -> None:
        self._store = load_or_create_index(self.config, embedding_client=self.embedding_client)
        self._retriever = HybridRetriever(
            self._store,
            embedding_client=self.embedding_client,
            config=self.config.retrieval,
        )
        self._orchestrator = ToolCallingOrchestrator(
            llm=self.llm,
            retriever=self._retriever,
            tool_registry=self.tool_registry,
            system_prompt=self.config.system_prompt(),
            config=self.config.agent,
            classifier=IntentClassifier(self.llm),
            conversation=self.conversation,
            trace_store=self.trace_store,
            max_results=self.config.retrieval.max_results,
        )
        _logger.info(
            "assistant_initialized",
            project=self.config.project_name,
            chunks=len(self._store),
            semantic=self._retriever.is_semantic_search_available(),
            llm=self.llm is not None,
        )

    def ask(self, question: str) -> AnswerWithSources:
        return self._require_orchestrator().ask(question)

    def search(self, query: str, max_results: int | None = None) -> list[SearchResult]:
        return self._require_retriever().search(query, max_results)

    def reindex(self) -> IndexStats:
        store = self._require_store()
        indexer = ProjectIndexer(self.config, embedding_client=self.embedding_client)
        stats = indexer.index_into(store)
        self._require_retriever().refresh()
        return stats

    def conversation_history(self, last_n: int | None = None) -> str:
        window = self.config.agent.history_window if last_n is None else last_n
        return self.conversation.history(window)

    def messages(self) -> list[Message]:
        return self.conversation.messages

    def clear_conversation(self) -> None:
        self.conversation.clear()

    def git_status(self) -> str:
        return self.git.status()

    def project_context(self) -> dict[str, Any]:
        stats = self._store.stats if self._store is not None else None
        git_stats = self.git.project_stats()
        return {
            "project_name": self.config.project_name,
            "description": self.config.project_description,
            "branch": git_stats.branch,
            "total_commits": git_stats.total_commits,
            "recent_commits": [commit.message for commit in git_stats.latest_commits],
            "stats": stats.to_dict() if stats is not None else None,
            "semantic_search": (
                self._retriever.is_semantic_search_available() if self._retriever else False
            ),
            "llm_configured": self.llm is not None,
            "tools": [spec.name for spec in self.tool_registry.specs()],
        }

    def _require_store(self) -> ChunkStore:
        if self._store is None:
            raise CodeAssistantError("Assistant is not initialized; call initialize() first")
        return self._store

    def _require_retriever(self) -> HybridRetriever:
        if self._retriever is None:
            raise CodeAssistantError("Assistant is not initialized; call initialize() first")
        return self._retriever

    def _require_orchestrator(self) -> ToolCallingOrchestrator:
        if self._orchestrator is None:
            raise CodeAssistantError("Assistant is not initialized; call initialize() first")
        return self._orchestrator
