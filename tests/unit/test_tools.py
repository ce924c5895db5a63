import json

import pytest

from code_assistant.agent.registry import ToolRegistry
from code_assistant.agent.tools import CRM_TAG, GIT_TAG, TASKS_TAG, register_builtin_tools
from code_assistant.services.crm import CRMStore
from code_assistant.services.tasks import TaskStore


@pytest.fixture
def tools(tmp_path, crm_store, fake_git) -> tuple[ToolRegistry, CRMStore, TaskStore]:
    tasks = TaskStore(tmp_path / "tasks.json")
    registry = ToolRegistry()
    register_builtin_tools(registry, git=fake_git, crm=crm_store, tasks=tasks)
    return registry, crm_store, tasks


def test_catalog_is_tagged_by_category(tools) -> None:
    registry, _, _ = tools

    assert [s.name for s in registry.specs(GIT_TAG)] == ["git_branch", "git_status"]
    assert [s.name for s in registry.specs(CRM_TAG)] == [
        "get_user",
        "list_tickets",
        "create_ticket",
        "update_ticket",
        "add_message",
        "search_tickets",
    ]
    assert [s.name for s in registry.specs(TASKS_TAG)] == [
        "list_tasks",
        "get_task",
        "create_task",
        "update_task",
    ]
    assert "Required: user_id, title, description." in registry.describe(CRM_TAG)


def test_only_available_collaborators_are_registered(tmp_path) -> None:
    registry = ToolRegistry()
    register_builtin_tools(registry, tasks=TaskStore(tmp_path / "tasks.json"))

    assert registry.specs(CRM_TAG) == []
    assert registry.specs(GIT_TAG) == []
    assert len(registry.specs(TASKS_TAG)) == 4


def test_git_tools(tools, fake_git) -> None:
    registry, _, _ = tools
    fake_git.branch = "feature/x"

    assert registry.execute("git_branch") == "feature/x"
    assert registry.execute("git_status") == "Working tree clean"

    fake_git.status_text = " M src/app.py\n"
    assert registry.execute("git_status") == "M src/app.py"


def test_get_user_success_and_missing_field(tools) -> None:
    registry, _, _ = tools

    payload = json.loads(registry.execute("get_user", {"user_id": "user_1"}))

    assert payload["success"] is True
    assert payload["user"]["name"] == "Ada"
    assert registry.execute("get_user", {}) == "Error: user_id is required for get_user"
    assert registry.execute("get_user", {"user_id": "user_404"}) == "Error: User user_404 not found"


def test_ticket_lifecycle(tools) -> None:
    registry, crm, _ = tools

    created = json.loads(
        registry.execute(
            "create_ticket",
            {
                "user_id": "user_1",
                "title": "Login fails",
                "description": "SSO redirect loops",
                "category": "technical",
                "priority": "high",
            },
        )
    )
    ticket_id = created["ticket_id"]
    updated = json.loads(
        registry.execute("update_ticket", {"ticket_id": ticket_id, "status": "in_progress"})
    )
    registry.execute("add_message", {"ticket_id": ticket_id, "text": "Looking into it"})
    listed = json.loads(
        registry.execute("list_tickets", {"user_id": "user_1", "status": "in_progress"})
    )
    found = json.loads(registry.execute("search_tickets", {"query": "sso"}))

    assert ticket_id.startswith("ticket_")
    assert updated["ticket"]["status"] == "in_progress"
    assert updated["ticket"]["priority"] == "high"
    assert listed["count"] == 1
    assert listed["tickets"][0]["message_count"] == 2
    assert found["count"] == 1
    assert [m.sender for m in crm.get_ticket(ticket_id).messages] == ["user", "support_agent"]


def test_ticket_tool_input_errors(tools) -> None:
    registry, _, _ = tools

    assert (
        registry.execute("create_ticket", {"user_id": "user_1"})
        == "Error: title and description are required for create_ticket"
    )
    assert registry.execute("search_tickets", {}) == (
        "Error: Invalid input for search_tickets: Either query or user_id is required"
    )
    assert registry.execute("update_ticket", {"ticket_id": "ticket_missing"}) == (
        "Error: Ticket ticket_missing not found"
    )


def test_task_tools(tools) -> None:
    registry, _, tasks = tools

    first = json.loads(
        registry.execute(
            "create_task",
            {"title": "Schema", "description": "Design tables", "assignee": "ana", "priority": "high"},
        )
    )
    second = json.loads(
        registry.execute(
            "create_task",
            {
                "title": "API",
                "description": "Expose endpoints",
                "assignee": "bo",
                "depends_on": [first["task_id"]],
            },
        )
    )
    registry.execute("update_task", {"task_id": first["task_id"], "status": "completed"})
    high = json.loads(registry.execute("list_tasks", {"priority": "high"}))
    detail = json.loads(registry.execute("get_task", {"task_id": second["task_id"]}))

    assert high["count"] == 1
    assert high["tasks"][0]["status"] == "completed"
    assert detail["dependencies"] == [
        {"id": first["task_id"], "title": "Schema", "status": "completed"}
    ]
    assert tasks.get_task(second["task_id"]).priority == "medium"
    assert registry.execute("get_task", {"task_id": "task_x"}) == "Error: Task task_x not found"
