from code_assistant.agent.directive import ToolDirectiveParser
from code_assistant.agent.prompts import (
    ANSWER_PROMPT,
    CLASSIFY_PROMPT,
    CONTEXT_CLOSING,
    FOLLOW_UP_PROMPT,
    tools_block,
)


def test_tool_instructions_describe_the_directive_markup() -> None:
    instructions = ToolDirectiveParser().format_instructions()

    assert "<tool>tool_name</tool>" in instructions
    assert "<input>" in instructions
    assert "at most one tool" in instructions


def test_tool_prompt_contains_catalog_and_directive_format() -> None:
    parser = ToolDirectiveParser()
    prompt = ANSWER_PROMPT.format(
        system="SYSTEM",
        history="",
        context="",
        tools=tools_block("- get_user: Look up a user (required: user_id)", parser.format_instructions()),
        question="Who is user_1?",
        closing="",
    )

    assert prompt.startswith("SYSTEM\n\n")
    assert "Available tools:\n- get_user:" in prompt
    assert "<tool>tool_name</tool>" in prompt
    assert tools_block("", parser.format_instructions()) == ""


def test_follow_up_prompt_restricts_answer_to_tool_result() -> None:
    prompt = FOLLOW_UP_PROMPT.format(
        system="SYSTEM",
        question="Who is user_1?",
        tool_name="get_user",
        tool_result='{"success": true}',
        context="",
        tools="",
    )

    assert 'Result of tool "get_user":\n{"success": true}' in prompt
    assert "using ONLY the tool result above" in prompt
    assert "explain the problem" in prompt


def test_grounding_and_classification_constraints() -> None:
    assert "cite your sources" in CONTEXT_CLOSING
    assert "Respond with exactly one word" in CLASSIFY_PROMPT.format(question="hi")
