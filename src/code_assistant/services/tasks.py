"""JSON-file backed task list."""

from __future__ import annotations

import json
import uuid
from pathlib import Path
from typing import Any, Literal

import structlog
from pydantic import BaseModel, Field

from code_assistant.errors import RecordNotFoundError
from code_assistant.services.crm import utc_now

_logger = structlog.get_logger()

TaskPriority = Literal["high", "medium", "low"]
TaskStatus = Literal["open", "in_progress", "completed"]


class Task(BaseModel):
    id: str
    title: str
    description: str
    priority: TaskPriority = "medium"
    status: TaskStatus = "open"
    assignee: str
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)
    depends_on: list[str] = Field(default_factory=list)


class TasksData(BaseModel):
    tasks: list[Task] = Field(default_factory=list)


class TaskStore:
    """Read-modify-write access to a `{tasks}` JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        if not self.path.exists():
            self._save(TasksData())

    def list_tasks(
        self,
        *,
        priority: str | None = None,
        status: str | None = None,
        assignee: str | None = None,
    ) -> list[Task]:
        tasks = self._load().tasks
        if priority:
            tasks = [t for t in tasks if t.priority == priority]
        if status:
            tasks = [t for t in tasks if t.status == status]
        if assignee:
            tasks = [t for t in tasks if t.assignee == assignee]
        return tasks

    def get_task(self, task_id: str) -> Task:
        for task in self._load().tasks:
            if task.id == task_id:
                return task
        raise RecordNotFoundError(f"Task {task_id} not found")

    def create_task(
        self,
        *,
        title: str,
        description: str,
        assignee: str,
        priority: TaskPriority = "medium",
        depends_on: list[str] | None = None,
    ) -> Task:
        data = self._load()
        task = Task(
            id=f"task_{uuid.uuid4().hex[:12]}",
            title=title,
            description=description,
            assignee=assignee,
            priority=priority,
            depends_on=list(depends_on or []),
        )
        data.tasks.append(task)
        self._save(data)
        _logger.info("task_created", task_id=task.id, assignee=assignee)
        return task

    def update_task(self, task_id: str, **updates: Any) -> Task:
        data = self._load()
        for task in data.tasks:
            if task.id == task_id:
                for key, value in updates.items():
                    if value is not None:
                        setattr(task, key, value)
                task.updated_at = utc_now()
                self._save(data)
                return task
        raise RecordNotFoundError(f"Task {task_id} not found")

    def dependencies(self, task_id: str) -> list[Task]:
        task = self.get_task(task_id)
        known = {t.id: t for t in self._load().tasks}
        return [known[dep] for dep in task.depends_on if dep in known]

    def _load(self) -> TasksData:
        return TasksData.model_validate(json.loads(self.path.read_text(encoding="utf-8")))

    def _save(self, data: TasksData) -> None:
        self.path.write_text(data.model_dump_json(indent=2), encoding="utf-8")
