"""Code-aware tokenization and lexical chunk scoring."""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass

from code_assistant.types import Chunk

_LOWER_UPPER = re.compile(r"([a-z])([A-Z])")
_ACRONYM_WORD = re.compile(r"([A-Z]+)([A-Z][a-z])")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")

STOP_WORDS = frozenset(
    {
        "the", "and", "but", "for", "with", "from", "was", "are", "been", "being",
        "have", "has", "had", "does", "did", "will", "would", "should", "could",
        "can", "may", "might", "must", "shall", "this", "that", "these", "those",
        "you", "she", "they", "what", "which", "who", "when", "where", "why", "how",
        "all", "each", "any", "not", "our", "your", "their", "its", "into", "about",
        "there", "here", "than", "then", "also", "just", "some", "such", "use",
    }
)

EXACT_WEIGHT = 3.0
PREFIX_WEIGHT = 1.5
MIN_SHARED_PREFIX = 4
FREQUENCY_CAP = 5
COVERAGE_WEIGHT = 0.7


def tokenize(text: str) -> list[str]:
    """Lower-case word tokens with camelCase split and stop words removed."""
    split = _ACRONYM_WORD.sub(r"\1 \2", _LOWER_UPPER.sub(r"\1 \2", text))
    return [
        token
        for token in _NON_ALNUM.split(split.lower())
        if len(token) > 2 and token not in STOP_WORDS
    ]


def length_floor(token_count: int) -> float:
    """Tie-break score that keeps long chunks rankable without any match."""
    return min(token_count / 1000.0, 0.1)


def _shared_prefix(a: str, b: str) -> int:
    n = 0
    for x, y in zip(a, b):
        if x != y:
            break
        n += 1
    return n


def _capped(freq: int) -> float:
    return min(freq, FREQUENCY_CAP) / FREQUENCY_CAP


@dataclass(slots=True)
class _TokenizedChunk:
    chunk: Chunk
    token_count: int
    frequencies: Counter[str]


class KeywordScorer:
    """Scores chunks by exact and shared-prefix token matches.

    Per query token, an exact hit adds `3.0 * min(freq, 5) / 5`. Without an
    exact hit, the first distinct chunk token sharing a prefix of at least four
    characters adds `1.5 * (prefix / len(query_token)) * min(freq, 5) / 5`.
    When a query token has both, the larger contribution wins, so adding an
    exact occurrence can never lower a chunk's score.

    The chunk score is the larger of the normalized raw score and the share of
    matched query tokens scaled by 0.7. Chunks without any match get the
    length floor `min(tokens / 1000, 0.1)`, which matched chunks never fall
    below either.
    """

    def __init__(self, chunks: list[Chunk] | None = None) -> None:
        self._entries: list[_TokenizedChunk] = []
        self.set_chunks(chunks or [])

    def set_chunks(self, chunks: list[Chunk]) -> None:
        entries = []
        for chunk in chunks:
            tokens = tokenize(chunk.content)
            entries.append(
                _TokenizedChunk(chunk=chunk, token_count=len(tokens), frequencies=Counter(tokens))
            )
        self._entries = entries

    def rank(self, query: str, limit: int | None = None) -> list[tuple[Chunk, float]]:
        """Return `(chunk, score)` best-first; ties keep chunk order."""
        query_tokens = list(dict.fromkeys(tokenize(query)))
        scored = [
            (entry.chunk, self._score(query_tokens, entry)) for entry in self._entries
        ]
        scored.sort(key=lambda item: item[1], reverse=True)
        return scored if limit is None else scored[:limit]

    def score(self, query: str, chunk: Chunk) -> float:
        tokens = tokenize(chunk.content)
        entry = _TokenizedChunk(chunk=chunk, token_count=len(tokens), frequencies=Counter(tokens))
        return self._score(list(dict.fromkeys(tokenize(query))), entry)

    def _score(self, query_tokens: list[str], entry: _TokenizedChunk) -> float:
        floor = length_floor(entry.token_count)
        if not query_tokens:
            return floor

        raw = 0.0
        matched = 0
        for query_token in query_tokens:
            contribution = 0.0
            freq = entry.frequencies.get(query_token, 0)
            if freq:
                contribution = EXACT_WEIGHT * _capped(freq)
            prefix = self._prefix_contribution(query_token, entry.frequencies)
            contribution = max(contribution, prefix)
            if contribution > 0:
                raw += contribution
                matched += 1

        if matched == 0:
            return floor

        normalized = min(raw / (2 * len(query_tokens)), 1.0)
        coverage = (matched / len(query_tokens)) * COVERAGE_WEIGHT
        return max(normalized, coverage, floor)

    @staticmethod
    def _prefix_contribution(query_token: str, frequencies: Counter[str]) -> float:
        if len(query_token) < MIN_SHARED_PREFIX:
            return 0.0
        for token, freq in frequencies.items():
            if token == query_token:
                continue
            shared = _shared_prefix(query_token, token)
            if shared >= MIN_SHARED_PREFIX:
                return PREFIX_WEIGHT * (shared / len(query_token)) * _capped(freq)
        return 0.0
