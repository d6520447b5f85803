"""Meeting evidence for chat context, tiered by confidence.

- confirmed: the contact is on the meeting's calendar event attendee list
- heuristic: a participant shares the contact's first name (never confirmed)
- recent: the user's latest meetings, used when no contact is in play

Every query is scoped to the acting user through ``calendar_events.user_id``
and returns meetings with participants, transcript and calendar event
embedded.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from supabase import Client

from scribe_chat.core.config import settings
from scribe_chat.models.contact import Contact
from scribe_chat.models.meeting import Meeting
from scribe_chat.services.contacts import ContactRepository, escape_like

logger = logging.getLogger(__name__)

_MEETING_EMBEDS = "meeting_participants(name, is_host), meeting_transcripts(content)"
MEETING_SELECT = f"*, calendar_events!inner(id, user_id, summary), {_MEETING_EMBEDS}"
CONFIRMED_MEETING_SELECT = (
    "*, calendar_events!inner(id, user_id, summary, "
    f"calendar_event_attendees!inner(contact_id)), {_MEETING_EMBEDS}"
)


def extract_first_name(name: str | None) -> str | None:
    """First whitespace-delimited token of a name; None for blank names."""
    if not name:
        return None
    tokens = name.split()
    return tokens[0] if tokens else None


def first_name_matches(participant_name: str | None, first_name: str) -> bool:
    """Token equality after case-folding.

    ``John`` matches ``John Smith`` and ``JOHN``, but not ``Johnson`` or
    ``Benjamin John``.
    """
    participant_first = extract_first_name(participant_name)
    return participant_first is not None and participant_first.casefold() == first_name.casefold()


def sort_by_recency(meetings: list[Meeting]) -> list[Meeting]:
    """Most recent first, meetings without a recording time last."""
    dated = [m for m in meetings if m.recorded_at is not None]
    undated = [m for m in meetings if m.recorded_at is None]
    dated.sort(key=lambda m: m.recorded_at.timestamp() if m.recorded_at else 0.0, reverse=True)
    return dated + undated


def _dedupe(meetings: list[Meeting]) -> list[Meeting]:
    seen: set[int] = set()
    unique: list[Meeting] = []
    for meeting in meetings:
        if meeting.id not in seen:
            seen.add(meeting.id)
            unique.append(meeting)
    return unique


class MeetingEvidenceFinder:
    """Finds the meetings a chat turn may draw on."""

    def __init__(
        self,
        db_client: Client,
        contacts: ContactRepository | None = None,
        max_meetings: int | None = None,
        max_name_matched_meetings: int | None = None,
    ) -> None:
        """Initialize the finder.

        Args:
            db_client: Supabase client for database operations.
            contacts: Contact repository used for email lookups.
            max_meetings: Cap for confirmed and recent results.
            max_name_matched_meetings: Cap for heuristic results.
        """
        self.db = db_client
        self.contacts = contacts or ContactRepository(db_client)
        self.max_meetings = max_meetings or settings.CHAT_MAX_MEETINGS
        self.max_name_matched_meetings = (
            max_name_matched_meetings or settings.CHAT_MAX_NAME_MATCHED_MEETINGS
        )

    def _rows_to_meetings(self, rows: list[dict] | None, limit: int) -> list[Meeting]:
        meetings = _dedupe([Meeting.from_row(row) for row in rows or []])
        return sort_by_recency(meetings)[:limit]

    async def find_confirmed(self, user_id: str, contact: Contact) -> list[Meeting]:
        """Meetings whose calendar event lists the contact as an attendee.

        Args:
            user_id: The acting user's ID.
            contact: The contact being discussed.

        Returns:
            Up to ``max_meetings`` meetings, most recent first.
        """
        result = (
            self.db.table("meetings")
            .select(CONFIRMED_MEETING_SELECT)
            .eq("calendar_events.user_id", user_id)
            .eq("calendar_events.calendar_event_attendees.contact_id", contact.id)
            .order("recorded_at", desc=True, nullsfirst=False)
            .limit(self.max_meetings)
            .execute()
        )
        meetings = self._rows_to_meetings(result.data, self.max_meetings)
        logger.debug(
            "Confirmed meetings found",
            extra={"user_id": user_id, "contact_id": contact.id, "count": len(meetings)},
        )
        return meetings

    async def find_confirmed_by_email(self, user_id: str, email: str) -> list[Meeting]:
        """Confirmed meetings for the local contact with this email, if any."""
        contact = await self.contacts.get_contact_by_email(email)
        if contact is None:
            return []
        return await self.find_confirmed(user_id, contact)

    async def find_heuristic(self, user_id: str, name: str | None) -> list[Meeting]:
        """Meetings with a participant sharing the name's first token.

        A server-side substring filter narrows the candidates; token equality
        is enforced here.

        Args:
            user_id: The acting user's ID.
            name: Full or first name of the person being discussed.

        Returns:
            Up to ``max_name_matched_meetings`` meetings, most recent first.
        """
        first_name = extract_first_name(name)
        if first_name is None:
            return []

        candidates = (
            self.db.table("meeting_participants")
            .select("meeting_id, name, meetings!inner(id, calendar_events!inner(user_id))")
            .eq("meetings.calendar_events.user_id", user_id)
            .ilike("name", f"%{escape_like(first_name)}%")
            .execute()
        )
        meeting_ids = sorted(
            {
                int(row["meeting_id"])
                for row in candidates.data or []
                if first_name_matches(row.get("name"), first_name)
            }
        )
        if not meeting_ids:
            return []

        result = (
            self.db.table("meetings")
            .select(MEETING_SELECT)
            .eq("calendar_events.user_id", user_id)
            .in_("id", meeting_ids)
            .order("recorded_at", desc=True, nullsfirst=False)
            .limit(self.max_name_matched_meetings)
            .execute()
        )
        meetings = self._rows_to_meetings(result.data, self.max_name_matched_meetings)
        logger.debug(
            "Name-matched meetings found",
            extra={"user_id": user_id, "first_name": first_name, "count": len(meetings)},
        )
        return meetings

    async def find_recent(self, user_id: str) -> list[Meeting]:
        """The user's most recent meetings, no contact filter."""
        result = (
            self.db.table("meetings")
            .select(MEETING_SELECT)
            .eq("calendar_events.user_id", user_id)
            .order("recorded_at", desc=True, nullsfirst=False)
            .limit(self.max_meetings)
            .execute()
        )
        return self._rows_to_meetings(result.data, self.max_meetings)
