"""Deterministic answers when the completion model is unavailable."""

from __future__ import annotations

from code_assistant.types import SearchResult

_KEYWORD_STOP_WORDS = frozenset(
    {
        "the", "and", "but", "for", "with", "from", "was", "are", "been", "being",
        "have", "has", "had", "does", "did", "will", "would", "should", "could",
        "can", "may", "might", "must", "shall", "this", "that", "these", "those",
        "they", "what", "which", "who", "when", "where", "why", "how", "each",
        "import", "export", "default", "function", "class", "const", "return",
        "else", "catch", "throw", "self", "none", "true", "false", "async", "await",
    }
)


def extract_keywords(sources: list[SearchResult], limit: int = 5) -> list[str]:
    """First few distinctive words of each source, in order of appearance."""
    keywords: dict[str, None] = {}
    for source in sources:
        words = [
            word
            for word in source.content.lower().split()
            if len(word) > 3 and word not in _KEYWORD_STOP_WORDS
        ]
        for word in words[:5]:
            keywords.setdefault(word, None)
    return list(keywords)[:limit]


def build_fallback_answer(question: str, sources: list[SearchResult]) -> str:
    if not sources:
        return (
            f'I could not find relevant information in the codebase for: "{question}". '
            "Please try a more specific question or check the documentation."
        )

    answer = "Based on the codebase, "
    keywords = extract_keywords(sources)
    if keywords:
        answer += f"I found information about: {', '.join(keywords)}. "
    answer += f"The most relevant files are [1] {sources[0].source}"
    if len(sources) > 1:
        answer += f" and [2] {sources[1].source}"
    return answer + "."


def calculate_confidence(sources: list[SearchResult]) -> float:
    """Coarse trust proxy from the number of supporting sources."""
    count = len(sources)
    if count == 0:
        return 0.0
    if count >= 3:
        return 0.9
    return 0.7
