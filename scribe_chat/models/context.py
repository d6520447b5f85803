"""Transient per-turn context: CRM snapshot, context bundle, meeting refs, citations."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from scribe_chat.models.contact import Contact
from scribe_chat.models.meeting import Meeting

# Provider spellings that mean the same normalized field
_KEY_ALIASES: dict[str, str] = {
    "jobtitle": "title",
    "job_title": "title",
    "company_name": "company",
    "displayname": "display_name",
    "crm_id": "id",
}

_NAMED_FIELDS = ("display_name", "email", "company", "title", "phone", "department")


def _normalize_key(key: Any) -> str:
    text = str(key).strip()
    if text.startswith(":"):
        text = text[1:]
    return text.lower()


def _clean(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class CRMSnapshot:
    """A CRM record for one person, normalized across providers.

    Raw records arrive with string keys or symbol-style keys (``":company"``)
    and provider spellings (``jobtitle``); ``from_mapping`` folds them into
    the named fields and keeps everything else in ``extra``.
    """

    provider: str | None = None
    crm_id: str | None = None
    display_name: str | None = None
    email: str | None = None
    company: str | None = None
    title: str | None = None
    phone: str | None = None
    department: str | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[Any, Any], provider: str | None = None) -> CRMSnapshot:
        """Build a snapshot from a raw provider or mention record."""
        normalized: dict[str, Any] = {}
        for key, value in data.items():
            name = _normalize_key(key)
            name = _KEY_ALIASES.get(name, name)
            # first spelling wins: "title" beats a later "jobtitle"
            if name in normalized and _clean(normalized[name]) is not None:
                continue
            normalized[name] = value

        display_value = normalized.pop("display_name", None)
        name_value = normalized.pop("name", None)
        display_name = _clean(display_value) or _clean(name_value)
        if display_name is None:
            parts = [
                _clean(normalized.get("firstname")) or _clean(normalized.get("first_name")),
                _clean(normalized.get("lastname")) or _clean(normalized.get("last_name")),
            ]
            display_name = " ".join(p for p in parts if p) or None

        named = {name: _clean(normalized.pop(name, None)) for name in _NAMED_FIELDS[1:]}
        crm_id = _clean(normalized.pop("id", None))
        source = _clean(normalized.pop("provider", None)) or _clean(normalized.pop("crm", None))

        return cls(
            provider=provider or source,
            crm_id=crm_id,
            display_name=display_name,
            extra=normalized,
            **named,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        data: dict[str, Any] = {
            "provider": self.provider,
            "id": self.crm_id,
            "display_name": self.display_name,
            "email": self.email,
            "company": self.company,
            "title": self.title,
            "phone": self.phone,
            "department": self.department,
        }
        data.update({k: v for k, v in self.extra.items() if k not in data})
        return data


@dataclass(frozen=True)
class ContextBundle:
    """Everything the prompt builder is allowed to see for one turn.

    Heuristic (first-name) meetings only ever stand in for confirmed ones:
    a bundle holding both is rejected at construction.
    """

    contact: Contact | None = None
    crm_snapshot: CRMSnapshot | None = None
    confirmed_meetings: tuple[Meeting, ...] = ()
    heuristic_meetings: tuple[Meeting, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "confirmed_meetings", tuple(self.confirmed_meetings))
        object.__setattr__(self, "heuristic_meetings", tuple(self.heuristic_meetings))
        if self.confirmed_meetings and self.heuristic_meetings:
            raise ValueError("heuristic_meetings must be empty when confirmed_meetings exist")

    @property
    def has_contact_context(self) -> bool:
        """True when the turn is about a specific contact or CRM record."""
        return self.contact is not None or self.crm_snapshot is not None

    @property
    def surfaced_meetings(self) -> tuple[Meeting, ...]:
        """Every meeting shown to the model, in rendered order."""
        return self.confirmed_meetings + self.heuristic_meetings


@dataclass(frozen=True)
class MeetingRef:
    """Reference to a meeting surfaced in an assistant reply's context."""

    meeting_id: int
    title: str | None
    date: str | None

    @classmethod
    def from_meeting(cls, meeting: Meeting) -> MeetingRef:
        return cls(meeting_id=meeting.id, title=meeting.title, date=meeting.date_label)

    def to_dict(self) -> dict[str, Any]:
        return {"meeting_id": self.meeting_id, "title": self.title, "date": self.date}


@dataclass(frozen=True)
class Citation:
    """A ``[label](meeting:id)`` reference found in a model reply.

    ``verified`` is False when the model cited a meeting it was never shown.
    """

    label: str
    meeting_id: int
    title: str | None = None
    date: str | None = None
    verified: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "meeting_id": self.meeting_id,
            "title": self.title,
            "date": self.date,
            "verified": self.verified,
        }
