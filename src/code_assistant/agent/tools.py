"""Built-in git, CRM and task tools."""

from __future__ import annotations

import json
from typing import Any

from pydantic import Field, model_validator

from code_assistant.agent.registry import ToolInput, ToolRegistry, ToolSpec
from code_assistant.services.crm import (
    CRMStore,
    Sender,
    TicketCategory,
    TicketMessage,
    TicketPriority,
    TicketStatus,
)
from code_assistant.services.git import GitHelper
from code_assistant.services.tasks import TaskPriority, TaskStatus, TaskStore

GIT_TAG = "git"
CRM_TAG = "crm"
TASKS_TAG = "tasks"


class NoInput(ToolInput):
    pass


class GetUserInput(ToolInput):
    user_id: str = Field(min_length=1)


class ListTicketsInput(ToolInput):
    user_id: str = Field(min_length=1)
    status: TicketStatus | None = None


class CreateTicketInput(ToolInput):
    user_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    category: TicketCategory = "other"
    priority: TicketPriority = "medium"


class UpdateTicketInput(ToolInput):
    ticket_id: str = Field(min_length=1)
    status: TicketStatus | None = None
    priority: TicketPriority | None = None


class AddMessageInput(ToolInput):
    ticket_id: str = Field(min_length=1)
    text: str = Field(min_length=1)
    sender: Sender = "support_agent"


class SearchTicketsInput(ToolInput):
    query: str | None = None
    user_id: str | None = None

    @model_validator(mode="after")
    def _query_or_user(self) -> "SearchTicketsInput":
        if not self.query and not self.user_id:
            raise ValueError("Either query or user_id is required")
        return self


class ListTasksInput(ToolInput):
    priority: TaskPriority | None = None
    status: TaskStatus | None = None
    assignee: str | None = None


class GetTaskInput(ToolInput):
    task_id: str = Field(min_length=1)


class CreateTaskInput(ToolInput):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    assignee: str = Field(min_length=1)
    priority: TaskPriority = "medium"
    depends_on: list[str] = Field(default_factory=list)


class UpdateTaskInput(ToolInput):
    task_id: str = Field(min_length=1)
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    assignee: str | None = None


def register_builtin_tools(
    registry: ToolRegistry,
    *,
    git: GitHelper | None = None,
    crm: CRMStore | None = None,
    tasks: TaskStore | None = None,
) -> None:
    """Register the tool catalog for whichever collaborators are available.

    Tools:
    - `git_branch` / `git_status`: repository metadata.
    - `get_user`, `list_tickets`, `create_ticket`, `update_ticket`,
      `add_message`, `search_tickets`: CRM reads and writes.
    - `list_tasks`, `get_task`, `create_task`, `update_task`: task list.
    """

    if git is not None:
        _register_git_tools(registry, git)
    if crm is not None:
        _register_crm_tools(registry, crm)
    if tasks is not None:
        _register_task_tools(registry, tasks)


def _register_git_tools(registry: ToolRegistry, git: GitHelper) -> None:
    def _branch(_: NoInput) -> str:
        return git.current_branch()

    def _status(_: NoInput) -> str:
        status = git.status().strip()
        return status if status else "Working tree clean"

    registry.register(
        ToolSpec(
            name="git_branch",
            description="Get the current git branch name.",
            args_schema=NoInput,
            handler=_branch,
            tags=[GIT_TAG],
        )
    )
    registry.register(
        ToolSpec(
            name="git_status",
            description="Get the repository status (modified, staged and untracked files).",
            args_schema=NoInput,
            handler=_status,
            tags=[GIT_TAG],
        )
    )


def _register_crm_tools(registry: ToolRegistry, crm: CRMStore) -> None:
    def _get_user(data: GetUserInput) -> str:
        user = crm.get_user(data.user_id)
        return _dump({"success": True, "user": user.model_dump()})

    def _list_tickets(data: ListTicketsInput) -> str:
        tickets = crm.user_tickets(data.user_id)
        if data.status:
            tickets = [t for t in tickets if t.status == data.status]
        return _dump(
            {
                "success": True,
                "count": len(tickets),
                "tickets": [
                    {
                        "id": t.id,
                        "title": t.title,
                        "status": t.status,
                        "priority": t.priority,
                        "category": t.category,
                        "created_at": t.created_at,
                        "message_count": len(t.messages),
                    }
                    for t in tickets
                ],
            }
        )

    def _create_ticket(data: CreateTicketInput) -> str:
        ticket = crm.create_ticket(
            user_id=data.user_id,
            title=data.title,
            description=data.description,
            category=data.category,
            priority=data.priority,
        )
        return _dump(
            {"success": True, "ticket_id": ticket.id, "message": "Ticket created successfully"}
        )

    def _update_ticket(data: UpdateTicketInput) -> str:
        ticket = crm.update_ticket(data.ticket_id, status=data.status, priority=data.priority)
        return _dump(
            {
                "success": True,
                "message": f"Ticket {ticket.id} updated successfully",
                "ticket": {
                    "id": ticket.id,
                    "status": ticket.status,
                    "priority": ticket.priority,
                    "updated_at": ticket.updated_at,
                },
            }
        )

    def _add_message(data: AddMessageInput) -> str:
        crm.add_message(data.ticket_id, TicketMessage(sender=data.sender, text=data.text))
        return _dump({"success": True, "message": f"Message added to ticket {data.ticket_id}"})

    def _search_tickets(data: SearchTicketsInput) -> str:
        tickets = crm.user_tickets(data.user_id) if data.user_id else crm.all_tickets()
        if data.query:
            needle = data.query.lower()
            tickets = [
                t
                for t in tickets
                if needle in t.title.lower() or needle in t.description.lower()
            ]
        return _dump(
            {
                "success": True,
                "count": len(tickets),
                "tickets": [
                    {
                        "id": t.id,
                        "user_id": t.user_id,
                        "title": t.title,
                        "status": t.status,
                        "priority": t.priority,
                        "created_at": t.created_at,
                    }
                    for t in tickets
                ],
            }
        )

    for spec in (
        ToolSpec(
            name="get_user",
            description="Get information about a specific user.",
            args_schema=GetUserInput,
            handler=_get_user,
        ),
        ToolSpec(
            name="list_tickets",
            description="List support tickets of a user, optionally filtered by status.",
            args_schema=ListTicketsInput,
            handler=_list_tickets,
        ),
        ToolSpec(
            name="create_ticket",
            description="Create a new support ticket (category: technical, billing, account, "
            "feature_request, other; priority: low, medium, high, urgent).",
            args_schema=CreateTicketInput,
            handler=_create_ticket,
        ),
        ToolSpec(
            name="update_ticket",
            description="Update a support ticket status or priority.",
            args_schema=UpdateTicketInput,
            handler=_update_ticket,
        ),
        ToolSpec(
            name="add_message",
            description="Add a message to a support ticket (sender: user, support_bot, support_agent).",
            args_schema=AddMessageInput,
            handler=_add_message,
        ),
        ToolSpec(
            name="search_tickets",
            description="Search support tickets by title or description, or by user_id.",
            args_schema=SearchTicketsInput,
            handler=_search_tickets,
        ),
    ):
        spec.tags.append(CRM_TAG)
        registry.register(spec)


def _register_task_tools(registry: ToolRegistry, tasks: TaskStore) -> None:
    def _list_tasks(data: ListTasksInput) -> str:
        found = tasks.list_tasks(priority=data.priority, status=data.status, assignee=data.assignee)
        return _dump(
            {"success": True, "count": len(found), "tasks": [t.model_dump() for t in found]}
        )

    def _get_task(data: GetTaskInput) -> str:
        task = tasks.get_task(data.task_id)
        dependencies = tasks.dependencies(data.task_id)
        return _dump(
            {
                "success": True,
                "task": task.model_dump(),
                "dependencies": [
                    {"id": dep.id, "title": dep.title, "status": dep.status} for dep in dependencies
                ],
            }
        )

    def _create_task(data: CreateTaskInput) -> str:
        task = tasks.create_task(
            title=data.title,
            description=data.description,
            assignee=data.assignee,
            priority=data.priority,
            depends_on=data.depends_on,
        )
        return _dump({"success": True, "task_id": task.id, "message": "Task created successfully"})

    def _update_task(data: UpdateTaskInput) -> str:
        task = tasks.update_task(
            data.task_id, status=data.status, priority=data.priority, assignee=data.assignee
        )
        return _dump(
            {
                "success": True,
                "message": f"Task {task.id} updated successfully",
                "task": task.model_dump(),
            }
        )

    for spec in (
        ToolSpec(
            name="list_tasks",
            description="List tasks, optionally filtered by priority (high, medium, low), "
            "status (open, in_progress, completed) or assignee.",
            args_schema=ListTasksInput,
            handler=_list_tasks,
        ),
        ToolSpec(
            name="get_task",
            description="Get one task with its dependencies.",
            args_schema=GetTaskInput,
            handler=_get_task,
        ),
        ToolSpec(
            name="create_task",
            description="Create a new task; depends_on is a list of task ids.",
            args_schema=CreateTaskInput,
            handler=_create_task,
        ),
        ToolSpec(
            name="update_task",
            description="Update a task status, priority or assignee.",
            args_schema=UpdateTaskInput,
            handler=_update_task,
        ),
    ):
        spec.tags.append(TASKS_TAG)
        registry.register(spec)


def _dump(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2)
