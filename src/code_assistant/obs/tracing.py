"""Per-question trace records and aggregate metrics."""

from __future__ import annotations

import time
import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone

from code_assistant.types import AnswerWithSources, ToolTrace


@dataclass(slots=True)
class TraceRecord:
    trace_id: str
    timestamp_utc: str
    question: str
    answer: str
    category: str
    tools_used: list[str]
    tool_traces: list[ToolTrace]
    source_paths: list[str]
    iterations: int
    confidence: float
    latency_ms: float


class TraceStore:
    """In-memory trace storage for API-level observability."""

    def __init__(self, max_records: int = 500) -> None:
        self.max_records = max_records
        self._records: dict[str, TraceRecord] = {}

    def create_record(
        self,
        *,
        question: str,
        answer: AnswerWithSources,
        tool_traces: list[ToolTrace],
        latency_ms: float,
    ) -> TraceRecord:
        record = TraceRecord(
            trace_id=str(uuid.uuid4()),
            timestamp_utc=datetime.now(timezone.utc).isoformat(),
            question=question,
            answer=answer.answer,
            category=answer.category,
            tools_used=list(answer.tools_used),
            tool_traces=list(tool_traces),
            source_paths=[source.source for source in answer.sources],
            iterations=answer.iterations,
            confidence=answer.confidence,
            latency_ms=latency_ms,
        )
        self._records[record.trace_id] = record
        while len(self._records) > self.max_records:
            del self._records[next(iter(self._records))]
        return record

    def get(self, trace_id: str) -> TraceRecord:
        record = self._records.get(trace_id)
        if record is None:
            raise KeyError(f"Trace not found: {trace_id}")
        return record

    def list_recent(self, limit: int = 20) -> list[TraceRecord]:
        if limit <= 0:
            return []
        return list(self._records.values())[-limit:]

    def summary(self) -> dict[str, object]:
        """Aggregate core observability metrics for dashboard display."""
        records = list(self._records.values())
        total = len(records)
        if total == 0:
            return {
                "total_requests": 0,
                "avg_latency_ms": 0.0,
                "p95_latency_ms": 0.0,
                "avg_confidence": 0.0,
                "tool_calls": {},
            }

        latencies = sorted(record.latency_ms for record in records)
        p95_index = max(0, int((len(latencies) * 0.95) - 1))
        tool_calls = Counter(trace.name for record in records for trace in record.tool_traces)

        return {
            "total_requests": total,
            "avg_latency_ms": sum(latencies) / total,
            "p95_latency_ms": latencies[p95_index],
            "avg_confidence": sum(record.confidence for record in records) / total,
            "tool_calls": dict(tool_calls),
        }


class Timer:
    """Context timer around one question."""

    def __init__(self) -> None:
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0
