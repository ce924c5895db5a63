"""Two-tier question classification: regex heuristics first, LLM for the rest."""

from __future__ import annotations

import re
from enum import StrEnum

import structlog

from code_assistant.agent.prompts import ANALYSIS_PROMPT, CLASSIFY_PROMPT
from code_assistant.llm import CompletionModel

_logger = structlog.get_logger()


class Intent(StrEnum):
    GIT = "git"
    CRM = "crm"
    TASKS = "tasks"
    RAG = "rag"


TOOL_INTENTS = frozenset({Intent.GIT, Intent.CRM, Intent.TASKS})
_INTENT_WORDS = frozenset(intent.value for intent in Intent)

_INTENT_PATTERNS: dict[Intent, re.Pattern[str]] = {
    Intent.GIT: re.compile(
        r"\b(git|branch(es)?|commits?|uncommitted|staged|unstaged|working tree|"
        r"modified files|untracked)\b",
        flags=re.IGNORECASE,
    ),
    Intent.CRM: re.compile(
        r"\b(tickets?|customers?|crm|support requests?|user_\w+|ticket_\w+)\b",
        flags=re.IGNORECASE,
    ),
    Intent.TASKS: re.compile(
        r"\b(tasks?|todos?|to-dos?|backlog|assignees?|assigned to|task_\w+)\b",
        flags=re.IGNORECASE,
    ),
}

_CODE_HINTS = re.compile(
    r"\b(code|codebase|files?|functions?|class(es)?|modules?|methods?|implement\w*|"
    r"architecture|documentation|docs|readme|config\w*|install\w*|how does|where is)\b",
    flags=re.IGNORECASE,
)

_ANALYTIC = re.compile(
    r"\b(should|recommend\w*|suggest\w*|first|next|prioriti[sz]\w*|why|explain\w*|"
    r"analy[sz]\w*|best|summar\w*|risks?|compare|focus)\b",
    flags=re.IGNORECASE,
)

_LOOKUP = re.compile(
    r"^\s*(list|show|get|display|give me|what is the|what are the|which|how many|"
    r"create|add|update|set|mark|close)\b",
    flags=re.IGNORECASE,
)


class IntentClassifier:
    """Routes a question to a tool category or to codebase retrieval.

    Exactly one heuristic category match is decisive. Questions with no match
    and an obvious code hint go to retrieval. Everything else is ambiguous and
    goes to a one-word LLM classification; without a model, or when its answer
    is unusable, the default is retrieval.
    """

    def __init__(self, llm: CompletionModel | None = None) -> None:
        self.llm = llm

    def classify(self, question: str) -> Intent:
        matches = [intent for intent, pattern in _INTENT_PATTERNS.items() if pattern.search(question)]
        if len(matches) == 1:
            return matches[0]
        if not matches and _CODE_HINTS.search(question):
            return Intent.RAG
        return self._classify_with_llm(question)

    def needs_analysis(self, question: str) -> bool:
        """Whether a tool question also needs codebase context and reasoning."""
        if _ANALYTIC.search(question):
            return True
        if _LOOKUP.search(question):
            return False
        if self.llm is None:
            return False
        answer = _ask(self.llm, ANALYSIS_PROMPT.format(question=question))
        return answer is not None and answer.startswith("yes")

    def _classify_with_llm(self, question: str) -> Intent:
        if self.llm is None:
            return Intent.RAG
        answer = _ask(self.llm, CLASSIFY_PROMPT.format(question=question))
        if answer is None:
            return Intent.RAG
        for word in re.findall(r"[a-z]+", answer):
            if word in _INTENT_WORDS:
                return Intent(word)
        _logger.info("classification_unrecognized", answer=answer[:80])
        return Intent.RAG


def _ask(llm: CompletionModel, prompt: str) -> str | None:
    try:
        return llm.invoke(prompt).strip().lower()
    except Exception as exc:
        _logger.warning("classification_failed", error=str(exc))
        return None
