import pytest

from code_assistant.agent.classifier import Intent, IntentClassifier


@pytest.mark.parametrize(
    ("question", "expected"),
    [
        ("What's the current git branch?", Intent.GIT),
        ("Do I have uncommitted changes?", Intent.GIT),
        ("Show open tickets for user_1", Intent.CRM),
        ("List my tasks", Intent.TASKS),
        ("How does the indexing code work?", Intent.RAG),
        ("Where is the config loader implemented?", Intent.RAG),
    ],
)
def test_heuristics_decide_without_model(question: str, expected: Intent, make_llm) -> None:
    llm = make_llm()

    assert IntentClassifier(llm).classify(question) is expected
    assert llm.prompts == []


def test_ambiguous_question_asks_model_for_one_word(make_llm) -> None:
    llm = make_llm(["Tasks."])

    intent = IntentClassifier(llm).classify("Which tickets became tasks last week?")

    assert intent is Intent.TASKS
    assert "Respond with exactly one word" in llm.prompts[0]


def test_unusable_or_failing_model_defaults_to_rag(make_llm) -> None:
    assert IntentClassifier(make_llm(["no idea"])).classify("hello there") is Intent.RAG
    assert IntentClassifier(make_llm([RuntimeError("down")])).classify("hello there") is Intent.RAG
    assert IntentClassifier(None).classify("tickets and tasks overview") is Intent.RAG


def test_needs_analysis_heuristics_then_model(make_llm) -> None:
    llm = make_llm(["Yes"])
    classifier = IntentClassifier(llm)

    assert classifier.needs_analysis("What should we work on first?") is True
    assert classifier.needs_analysis("Why is the ticket still open?") is True
    assert classifier.needs_analysis("List all high priority tasks") is False
    assert classifier.needs_analysis("Show tickets for user_1") is False
    assert llm.prompts == []

    assert classifier.needs_analysis("Tasks blocking the release?") is True
    assert "yes or no" in llm.prompts[0]
    assert IntentClassifier(None).needs_analysis("Tasks blocking the release?") is False
