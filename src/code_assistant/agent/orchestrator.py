"""Bounded tool-calling loop for text-only completion models."""

from __future__ import annotations

import json

import structlog

from code_assistant.agent.classifier import TOOL_INTENTS, Intent, IntentClassifier
from code_assistant.agent.conversation import ConversationManager
from code_assistant.agent.directive import DirectiveParser, ToolDirectiveParser
from code_assistant.agent.fallback import build_fallback_answer, calculate_confidence
from code_assistant.agent.prompts import (
    ANSWER_PROMPT,
    CONTEXT_CLOSING,
    FOLLOW_UP_PROMPT,
    PLAIN_CLOSING,
    context_block,
    history_block,
    tools_block,
)
from code_assistant.agent.registry import ToolRegistry
from code_assistant.config import AgentConfig
from code_assistant.errors import GenerationError
from code_assistant.llm import CompletionModel
from code_assistant.obs.tracing import Timer, TraceStore
from code_assistant.retrieval.retriever import HybridRetriever, format_context
from code_assistant.types import AnswerWithSources, SearchResult, ToolTrace

_logger = structlog.get_logger()


class ToolCallingOrchestrator:
    """Answers one question at a time: classify, retrieve, then generate with tools.

    Every model response is scanned for a tool directive. A response without
    one is the final answer. A response with one has its leading text kept as
    partial answer, the tool is executed, and a follow-up prompt carrying the
    tool result starts the next iteration. The loop stops after
    `max_iterations` model calls at most. If the very first generation fails,
    the answer is synthesized from retrieved sources instead.
    """

    def __init__(
        self,
        *,
        llm: CompletionModel | None,
        retriever: HybridRetriever,
        tool_registry: ToolRegistry,
        system_prompt: str,
        config: AgentConfig | None = None,
        classifier: IntentClassifier | None = None,
        parser: DirectiveParser | None = None,
        conversation: ConversationManager | None = None,
        trace_store: TraceStore | None = None,
        max_results: int | None = None,
    ) -> None:
        self.llm = llm
        self.retriever = retriever
        self.tool_registry = tool_registry
        self.system_prompt = system_prompt
        self.config = config or AgentConfig()
        self.classifier = classifier or IntentClassifier(llm)
        self.parser = parser or ToolDirectiveParser()
        self.conversation = conversation or ConversationManager(self.config.max_history)
        self.trace_store = trace_store or TraceStore()
        self.max_results = max_results

    def ask(self, question: str) -> AnswerWithSources:
        history = self.conversation.history(self.config.history_window)
        self.conversation.add_user_message(question)

        observed: list[ToolTrace] = []
        self.tool_registry.set_observer(observed.append)
        try:
            with Timer() as timer:
                answer = self._answer(question, history)
        finally:
            self.tool_registry.set_observer(None)

        record = self.trace_store.create_record(
            question=question,
            answer=answer,
            tool_traces=observed,
            latency_ms=timer.elapsed_ms,
        )
        answer.trace_id = record.trace_id
        self.conversation.add_assistant_message(answer.answer, answer.sources)
        _logger.info(
            "question_answered",
            trace_id=record.trace_id,
            category=answer.category,
            tools=answer.tools_used,
            iterations=answer.iterations,
            latency_ms=round(record.latency_ms, 1),
        )
        return answer

    def _answer(self, question: str, history: str) -> AnswerWithSources:
        category = self.classifier.classify(question)
        sources: list[SearchResult] = []
        if category is Intent.RAG or self.classifier.needs_analysis(question):
            sources = self.retriever.search(question, self.max_results)

        tools_used: list[str] = []
        try:
            text, iterations = self._run_loop(question, category, sources, history, tools_used)
        except GenerationError as exc:
            _logger.warning("generation_fallback", error=str(exc))
            if not sources:
                sources = self.retriever.search(question, self.max_results)
            text, iterations = build_fallback_answer(question, sources), 0

        return AnswerWithSources(
            answer=text,
            sources=sources,
            confidence=calculate_confidence(sources),
            category=category.value,
            tools_used=tools_used,
            iterations=iterations,
        )

    def _run_loop(
        self,
        question: str,
        category: Intent,
        sources: list[SearchResult],
        history: str,
        tools_used: list[str],
    ) -> tuple[str, int]:
        if self.llm is None:
            raise GenerationError("No completion model configured")

        tools = self._tools_block(category)
        context = context_block(format_context(sources))
        prompt = ANSWER_PROMPT.format(
            system=self.system_prompt,
            history=history_block(history),
            context=context,
            tools=tools,
            question=question,
            closing=CONTEXT_CLOSING if sources else PLAIN_CLOSING,
        )

        partial: list[str] = []
        last_result: tuple[str, str] | None = None
        last_call: tuple[str, str] | None = None
        iterations = 0
        finished = False

        while iterations < self.config.max_iterations:
            iterations += 1
            try:
                response = self.llm.invoke(prompt)
            except Exception as exc:
                if iterations == 1:
                    raise GenerationError(str(exc)) from exc
                _logger.warning("tool_loop_iteration_failed", iteration=iterations, error=str(exc))
                break

            request = self.parser.parse(response)
            if request is None:
                partial.append(response.strip())
                finished = True
                break

            if request.preceding_text:
                partial.append(request.preceding_text)

            call = (request.tool_name, json.dumps(request.tool_input or {}, sort_keys=True))
            if self.config.stop_on_repeated_tool and call == last_call:
                _logger.warning("repeated_tool_call", tool=request.tool_name, iteration=iterations)
                break
            last_call = call

            if request.tool_name not in tools_used:
                tools_used.append(request.tool_name)
            result = self.tool_registry.execute(request.tool_name, request.tool_input)
            last_result = (request.tool_name, result)
            prompt = FOLLOW_UP_PROMPT.format(
                system=self.system_prompt,
                question=question,
                tool_name=request.tool_name,
                tool_result=result,
                context=context,
                tools=tools,
            )

        if not finished and iterations >= self.config.max_iterations:
            _logger.warning("tool_loop_cap_reached", iterations=iterations, tools=tools_used)

        text = "\n\n".join(part for part in partial if part).strip()
        if text:
            return text, iterations
        if last_result is not None:
            name, result = last_result
            return f"Result of {name}:\n{result}", iterations
        raise GenerationError("Model produced no answer text")

    def _tools_block(self, category: Intent) -> str:
        if category not in TOOL_INTENTS:
            return ""
        catalog = self.tool_registry.describe(tag=category.value)
        return tools_block(catalog, self.parser.format_instructions())
