"""FastAPI entrypoint for query/search/index/trace endpoints."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from code_assistant.assistant import CodeAssistant
from code_assistant.config import AssistantSettings
from code_assistant.errors import CodeAssistantError, NoFilesIndexedError
from code_assistant.obs.log_config import configure_logging
from code_assistant.types import Message


class QueryRequest(BaseModel):
    question: str = Field(min_length=1)


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    max_results: int = Field(default=5, ge=1, le=50)


def create_app(assistant: CodeAssistant) -> FastAPI:
    if not assistant.initialized:
        assistant.initialize()

    app = FastAPI(title="Code Assistant", version="0.1.0")
    trace_store = assistant.trace_store

    @app.get("/health")
    def health() -> dict[str, Any]:
        context = assistant.project_context()
        return {
            "status": "ok",
            "project": context["project_name"],
            "llm_configured": context["llm_configured"],
            "semantic_search": context["semantic_search"],
            "chunks": (context["stats"] or {}).get("totalChunks", 0),
            "trace_count": len(trace_store.list_recent(limit=1000)),
        }

    @app.post("/query")
    def query(request: QueryRequest) -> dict[str, Any]:
        try:
            return assistant.ask(request.question).to_dict()
        except Exception as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc

    @app.post("/search")
    def search(request: SearchRequest) -> dict[str, Any]:
        results = assistant.search(request.query, request.max_results)
        return {"items": [result.to_dict() for result in results]}

    @app.post("/index")
    def index() -> dict[str, Any]:
        try:
            stats = assistant.reindex()
        except NoFilesIndexedError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except CodeAssistantError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return stats.to_dict()

    @app.get("/conversation")
    def conversation() -> dict[str, Any]:
        return {
            "history": assistant.conversation_history(),
            "messages": [_message_payload(message) for message in assistant.messages()],
        }

    @app.delete("/conversation")
    def clear_conversation() -> dict[str, Any]:
        assistant.clear_conversation()
        return {"cleared": True}

    @app.get("/traces")
    def traces(limit: int = 20) -> dict[str, Any]:
        return {"items": [asdict(record) for record in trace_store.list_recent(limit=limit)]}

    @app.get("/traces/{trace_id}")
    def trace_detail(trace_id: str) -> dict[str, Any]:
        try:
            record = trace_store.get(trace_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return asdict(record)

    @app.get("/metrics")
    def metrics() -> dict[str, Any]:
        return trace_store.summary()

    return app


def create_default_app() -> FastAPI:
    """App factory for `uvicorn code_assistant.api.main:create_default_app --factory`."""
    settings = AssistantSettings()
    configure_logging(json_output=settings.log_json, log_level=settings.log_level)
    return create_app(CodeAssistant.from_settings(settings))


def _message_payload(message: Message) -> dict[str, Any]:
    return {
        "role": message.role,
        "content": message.content,
        "timestamp": message.timestamp,
        "sources": [source.to_dict() for source in message.sources or []],
    }
