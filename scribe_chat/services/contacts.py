"""Repository for the global contacts table.

Contacts are shared across users; a user only *sees* the contacts that
attended one of their calendar events.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from supabase import Client

from scribe_chat.core.exceptions import DatabaseError, ValidationError
from scribe_chat.models.contact import Contact, normalize_email

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user text matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ContactRepository:
    """Lookups and lazy creation of contacts."""

    def __init__(self, db_client: Client) -> None:
        """Initialize the repository.

        Args:
            db_client: Supabase client for database operations.
        """
        self.db = db_client

    async def get_contact(self, contact_id: int) -> Contact | None:
        """Get a contact by id, or None if it does not exist."""
        result = self.db.table("contacts").select("*").eq("id", contact_id).limit(1).execute()
        if not result.data:
            return None
        return Contact.from_dict(result.data[0])

    async def get_contact_by_email(self, email: str) -> Contact | None:
        """Get a contact by email (case-insensitive), or None."""
        if not email or not email.strip():
            return None
        result = (
            self.db.table("contacts")
            .select("*")
            .eq("email", normalize_email(email))
            .limit(1)
            .execute()
        )
        if not result.data:
            return None
        return Contact.from_dict(result.data[0])

    async def search_contacts(
        self, user_id: str, query: str, limit: int = SEARCH_LIMIT
    ) -> list[Contact]:
        """Search the user's contacts by name or email for autocomplete.

        Args:
            user_id: The acting user's ID.
            query: Substring to match, case-insensitively.
            limit: Maximum number of contacts to return.

        Returns:
            Matching contacts ordered by name.
        """
        term = query.strip()
        if not term:
            return []

        # PostgREST or-filters are comma separated; strip characters that break them
        pattern = f"%{escape_like(term)}%".replace(",", " ").replace("(", " ").replace(")", " ")
        result = (
            self.db.table("contacts")
            .select(
                "id, email, name, "
                "calendar_event_attendees!inner(calendar_events!inner(user_id))"
            )
            .eq("calendar_event_attendees.calendar_events.user_id", user_id)
            .or_(f"name.ilike.{pattern},email.ilike.{pattern}")
            .order("name")
            .limit(limit)
            .execute()
        )

        contacts: dict[int, Contact] = {}
        for row in result.data or []:
            contact = Contact.from_dict(row)
            contacts.setdefault(contact.id, contact)
        return list(contacts.values())

    async def find_or_create_contact(self, email: str, name: str | None = None) -> Contact:
        """Return the contact for an email, creating it on first observation.

        An existing contact without a name takes the observed name.

        Raises:
            ValidationError: If the email is blank.
            DatabaseError: If the insert or update returns no row.
        """
        if not email or not email.strip():
            raise ValidationError("Email is required", field="email")

        existing = await self.get_contact_by_email(email)
        if existing is None:
            payload: dict[str, Any] = {"email": normalize_email(email), "name": name}
            result = self.db.table("contacts").insert(payload).execute()
            if not result.data:
                raise DatabaseError("Failed to create contact")
            contact = Contact.from_dict(result.data[0])
            logger.info("Contact created", extra={"contact_id": contact.id})
            return contact

        if name and not existing.name:
            result = (
                self.db.table("contacts").update({"name": name}).eq("id", existing.id).execute()
            )
            if not result.data:
                raise DatabaseError("Failed to update contact")
            return Contact.from_dict(result.data[0])

        return existing
