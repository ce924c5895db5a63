"""Prompt templates for classification, answering and tool follow-ups."""

from __future__ import annotations

from langchain_core.prompts import PromptTemplate

CLASSIFY_PROMPT = PromptTemplate.from_template(
    "Classify the user's question into one category.\n"
    "- git: questions about branches, commits or repository status\n"
    "- crm: questions about users, customers or support tickets\n"
    "- tasks: questions about the task list, priorities or assignees\n"
    "- rag: questions about the codebase, its files or documentation\n\n"
    "Question: {question}\n\n"
    "Respond with exactly one word: git, crm, tasks or rag."
)

ANALYSIS_PROMPT = PromptTemplate.from_template(
    "Does answering this question require reasoning or recommendations on top of "
    "raw data (for example deciding what to do first), rather than just listing data?\n\n"
    "Question: {question}\n\n"
    "Respond with exactly one word: yes or no."
)

ANSWER_PROMPT = PromptTemplate.from_template(
    "{system}\n\n"
    "{history}"
    "{context}"
    "{tools}"
    "User Question: {question}\n\n"
    "{closing}"
)

FOLLOW_UP_PROMPT = PromptTemplate.from_template(
    "{system}\n\n"
    "Original question: {question}\n\n"
    'Result of tool "{tool_name}":\n'
    "{tool_result}\n\n"
    "{context}"
    "Answer the original question using ONLY the tool result above. "
    "If the result is an error, explain the problem to the user.\n\n"
    "{tools}"
)

CONTEXT_CLOSING = (
    "Please provide a detailed answer based on the provided context. Always cite your "
    "sources using [1], [2], etc. referencing the sources listed above."
)
PLAIN_CLOSING = "Provide a clear and concise answer."


def history_block(history: str) -> str:
    return f"Conversation so far:\n{history}\n" if history else ""


def context_block(context: str) -> str:
    return f"Context from codebase:\n{context}\n\n" if context else ""


def tools_block(catalog: str, instructions: str) -> str:
    if not catalog:
        return ""
    return f"Available tools:\n{catalog}\n\n{instructions}\n\n"
