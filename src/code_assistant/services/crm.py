"""JSON-file backed CRM store for users and support tickets."""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal

import structlog
from pydantic import BaseModel, Field

from code_assistant.errors import RecordNotFoundError

_logger = structlog.get_logger()

TicketStatus = Literal["open", "in_progress", "waiting_customer", "resolved", "closed"]
TicketPriority = Literal["low", "medium", "high", "urgent"]
TicketCategory = Literal["technical", "billing", "account", "feature_request", "other"]
Sender = Literal["user", "support_bot", "support_agent"]


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class User(BaseModel):
    id: str
    name: str
    email: str
    plan: Literal["free", "pro", "enterprise"] = "free"
    created_at: str = Field(default_factory=utc_now)
    status: Literal["active", "inactive"] = "active"


class TicketMessage(BaseModel):
    sender: Sender
    text: str
    timestamp: str = Field(default_factory=utc_now)


class Ticket(BaseModel):
    id: str
    user_id: str
    title: str
    description: str
    category: TicketCategory = "other"
    status: TicketStatus = "open"
    priority: TicketPriority = "medium"
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)
    messages: list[TicketMessage] = Field(default_factory=list)


class CRMData(BaseModel):
    users: list[User] = Field(default_factory=list)
    tickets: list[Ticket] = Field(default_factory=list)


class CRMStore:
    """Read-modify-write access to a `{users, tickets}` JSON file.

    Every call reloads the file, so edits made by another process between
    calls are picked up; concurrent writers are not coordinated.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        if not self.path.exists():
            self._save(CRMData())

    def get_user(self, user_id: str) -> User:
        for user in self._load().users:
            if user.id == user_id:
                return user
        raise RecordNotFoundError(f"User {user_id} not found")

    def get_ticket(self, ticket_id: str) -> Ticket:
        for ticket in self._load().tickets:
            if ticket.id == ticket_id:
                return ticket
        raise RecordNotFoundError(f"Ticket {ticket_id} not found")

    def user_tickets(self, user_id: str) -> list[Ticket]:
        return [t for t in self._load().tickets if t.user_id == user_id]

    def all_tickets(self) -> list[Ticket]:
        return self._load().tickets

    def create_ticket(
        self,
        *,
        user_id: str,
        title: str,
        description: str,
        category: TicketCategory = "other",
        priority: TicketPriority = "medium",
    ) -> Ticket:
        data = self._load()
        if not any(user.id == user_id for user in data.users):
            raise RecordNotFoundError(f"User {user_id} not found")

        ticket = Ticket(
            id=f"ticket_{uuid.uuid4().hex[:12]}",
            user_id=user_id,
            title=title,
            description=description,
            category=category,
            priority=priority,
            messages=[TicketMessage(sender="user", text=description)],
        )
        data.tickets.append(ticket)
        self._save(data)
        _logger.info("ticket_created", ticket_id=ticket.id, user_id=user_id)
        return ticket

    def update_ticket(self, ticket_id: str, **updates: Any) -> Ticket:
        data = self._load()
        ticket = self._find(data, ticket_id)
        for key, value in updates.items():
            if value is not None:
                setattr(ticket, key, value)
        ticket.updated_at = utc_now()
        self._save(data)
        return ticket

    def add_message(self, ticket_id: str, message: TicketMessage) -> Ticket:
        data = self._load()
        ticket = self._find(data, ticket_id)
        ticket.messages.append(message)
        ticket.updated_at = utc_now()
        self._save(data)
        return ticket

    @staticmethod
    def _find(data: CRMData, ticket_id: str) -> Ticket:
        for ticket in data.tickets:
            if ticket.id == ticket_id:
                return ticket
        raise RecordNotFoundError(f"Ticket {ticket_id} not found")

    def _load(self) -> CRMData:
        return CRMData.model_validate(json.loads(self.path.read_text(encoding="utf-8")))

    def _save(self, data: CRMData) -> None:
        self.path.write_text(data.model_dump_json(indent=2), encoding="utf-8")
