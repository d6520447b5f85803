"""Contact and attendance-link records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


def normalize_email(email: str) -> str:
    """Contacts are keyed by trimmed, lower-cased email."""
    return email.strip().lower()


@dataclass(frozen=True)
class Contact:
    """A globally unique business contact (one record per email)."""

    id: int
    email: str
    name: str | None = None

    @property
    def display_name(self) -> str:
        """Name when set, otherwise the email."""
        return self.name if self.name else self.email

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {"id": self.id, "email": self.email, "name": self.name}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Contact:
        """Create Contact from database record."""
        return cls(
            id=int(data["id"]),
            email=normalize_email(data["email"]),
            name=data.get("name"),
        )


@dataclass(frozen=True)
class AttendanceLink:
    """Join between a Contact and a calendar event it attended.

    The only high-confidence signal connecting a contact to a meeting.
    """

    calendar_event_id: int
    contact_id: int
    display_name: str | None = None
    is_organizer: bool = False
    response_status: str | None = None
    contact: Contact | None = None

    @property
    def resolved_name(self) -> str | None:
        """Name as seen in the event, then the contact's name, then email."""
        if self.display_name:
            return self.display_name
        if self.contact is not None:
            return self.contact.display_name
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AttendanceLink:
        """Create AttendanceLink from database record (optionally with embedded contact)."""
        contact_data = data.get("contacts")
        return cls(
            calendar_event_id=int(data["calendar_event_id"]),
            contact_id=int(data["contact_id"]),
            display_name=data.get("display_name"),
            is_organizer=bool(data.get("is_organizer", False)),
            response_status=data.get("response_status"),
            contact=Contact.from_dict(contact_data) if isinstance(contact_data, dict) else None,
        )
