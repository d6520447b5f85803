"""Decide which contact a chat message is about.

The decision is an ordered list of (guard, handler) rules over the message's
first mention; the first guard that holds wins. A mention looks like::

    {"contact_id": 42, "email": "jo@acme.com", "name": "Jo Park",
     "crm_data": {...}}

with every key optional.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from scribe_chat.models.contact import Contact
from scribe_chat.models.context import CRMSnapshot
from scribe_chat.services.contacts import ContactRepository

logger = logging.getLogger(__name__)

Mention = Mapping[str, Any]


class ResolutionBranch(str, enum.Enum):
    """Which rule resolved the mention."""

    CONTACT = "contact"
    CRM_WITH_EMAIL = "crm_with_email"
    CRM_ONLY = "crm_only"
    EMAIL_ONLY = "email_only"
    RECENT = "recent"


@dataclass(frozen=True)
class Resolution:
    """Outcome of contact resolution for one message."""

    branch: ResolutionBranch
    contact: Contact | None = None
    crm_snapshot: CRMSnapshot | None = None
    email: str | None = None
    mention_name: str | None = None

    @property
    def display_name(self) -> str | None:
        """Best available name: mention, then contact, then CRM record."""
        for candidate in (
            self.mention_name,
            self.contact.name if self.contact else None,
            self.crm_snapshot.display_name if self.crm_snapshot else None,
        ):
            if candidate and candidate.strip():
                return candidate
        return None


def first_mention(metadata: Any) -> Mention:
    """First mention in a metadata bag, or an empty mention if malformed."""
    if not isinstance(metadata, Mapping):
        return {}
    mentions = metadata.get("mentions")
    if isinstance(mentions, list) and mentions and isinstance(mentions[0], Mapping):
        return mentions[0]
    return {}


def _contact_id(mention: Mention) -> int | None:
    value = mention.get("contact_id")
    # bool is an int subclass but never an id
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def _email(mention: Mention) -> str | None:
    value = mention.get("email")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _crm_data(mention: Mention) -> Mapping[Any, Any] | None:
    value = mention.get("crm_data")
    return value if isinstance(value, Mapping) else None


def _name(mention: Mention) -> str | None:
    value = mention.get("name")
    return value if isinstance(value, str) and value.strip() else None


class ContactResolver:
    """Runs the resolution cascade."""

    def __init__(self, contacts: ContactRepository) -> None:
        self.contacts = contacts
        self._rules: list[
            tuple[Callable[[Mention], bool], Callable[[Mention], Awaitable[Resolution]]]
        ] = [
            (lambda m: _contact_id(m) is not None, self._resolve_contact_id),
            (
                lambda m: _crm_data(m) is not None and _email(m) is not None,
                self._resolve_crm_with_email,
            ),
            (lambda m: _crm_data(m) is not None, self._resolve_crm_only),
            (lambda m: _email(m) is not None, self._resolve_email_only),
        ]

    async def resolve(self, mention: Mention | None) -> Resolution:
        """Resolve a mention, falling back to the user's recent meetings.

        Args:
            mention: The first mention of the message, or None.

        Returns:
            The resolution of the first matching rule.
        """
        mention = mention or {}
        for guard, handler in self._rules:
            if guard(mention):
                return await handler(mention)
        return Resolution(branch=ResolutionBranch.RECENT)

    async def _resolve_contact_id(self, mention: Mention) -> Resolution:
        contact_id = _contact_id(mention)
        try:
            contact = await self.contacts.get_contact(contact_id)  # type: ignore[arg-type]
        except Exception:
            logger.warning(
                "Contact lookup failed, resolving without contact id",
                extra={"contact_id": contact_id},
                exc_info=True,
            )
            contact = None

        if contact is None:
            logger.info(
                "Mentioned contact no longer exists, resolving without it",
                extra={"contact_id": contact_id},
            )
            return await self.resolve({k: v for k, v in mention.items() if k != "contact_id"})

        crm_data = _crm_data(mention)
        return Resolution(
            branch=ResolutionBranch.CONTACT,
            contact=contact,
            crm_snapshot=CRMSnapshot.from_mapping(crm_data) if crm_data is not None else None,
            email=contact.email,
            mention_name=_name(mention),
        )

    async def _resolve_crm_with_email(self, mention: Mention) -> Resolution:
        return Resolution(
            branch=ResolutionBranch.CRM_WITH_EMAIL,
            crm_snapshot=CRMSnapshot.from_mapping(_crm_data(mention) or {}),
            email=_email(mention),
            mention_name=_name(mention),
        )

    async def _resolve_crm_only(self, mention: Mention) -> Resolution:
        return Resolution(
            branch=ResolutionBranch.CRM_ONLY,
            crm_snapshot=CRMSnapshot.from_mapping(_crm_data(mention) or {}),
            mention_name=_name(mention),
        )

    async def _resolve_email_only(self, mention: Mention) -> Resolution:
        email = _email(mention)
        try:
            contact = await self.contacts.get_contact_by_email(email)  # type: ignore[arg-type]
        except Exception:
            logger.warning("Contact lookup by email failed", exc_info=True)
            contact = None
        return Resolution(
            branch=ResolutionBranch.EMAIL_ONLY,
            contact=contact,
            email=email,
            mention_name=_name(mention),
        )
