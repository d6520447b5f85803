"""Chat thread and message records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class MessageRole(str, Enum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        return value
    return None


@dataclass
class ChatThread:
    """A conversation owned by exactly one user."""

    id: int
    user_id: str
    title: str | None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChatThread:
        """Create ChatThread from database record."""
        return cls(
            id=int(data["id"]),
            user_id=str(data["user_id"]),
            title=data.get("title"),
            created_at=_parse_timestamp(data.get("created_at")),
            updated_at=_parse_timestamp(data.get("updated_at")),
        )


@dataclass
class ChatMessage:
    """A message in a chat thread.

    ``metadata`` is an opaque bag: user messages carry ``mentions``,
    assistant messages carry ``meeting_refs``.
    """

    id: int
    thread_id: int
    role: MessageRole
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)
    inserted_at: datetime | None = None

    @property
    def mentions(self) -> list[dict[str, Any]]:
        """Well-formed mention entries, in the order they were sent."""
        mentions = self.metadata.get("mentions") if isinstance(self.metadata, dict) else None
        if not isinstance(mentions, list):
            return []
        return [m for m in mentions if isinstance(m, dict)]

    @property
    def meeting_refs(self) -> list[dict[str, Any]]:
        refs = self.metadata.get("meeting_refs") if isinstance(self.metadata, dict) else None
        return [r for r in refs if isinstance(r, dict)] if isinstance(refs, list) else []

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "id": self.id,
            "thread_id": self.thread_id,
            "role": self.role.value,
            "content": self.content,
            "metadata": self.metadata,
            "inserted_at": self.inserted_at.isoformat() if self.inserted_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChatMessage:
        """Create ChatMessage from database record."""
        metadata = data.get("metadata")
        return cls(
            id=int(data["id"]),
            thread_id=int(data["thread_id"]),
            role=MessageRole(data["role"]),
            content=data.get("content") or "",
            metadata=metadata if isinstance(metadata, dict) else {},
            inserted_at=_parse_timestamp(data.get("inserted_at")),
        )
