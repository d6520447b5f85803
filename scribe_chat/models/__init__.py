"""Models package for Scribe Chat."""

from scribe_chat.models.chat import ChatMessage, ChatThread, MessageRole
from scribe_chat.models.contact import AttendanceLink, Contact, normalize_email
from scribe_chat.models.context import Citation, ContextBundle, CRMSnapshot, MeetingRef
from scribe_chat.models.meeting import (
    CalendarEventRef,
    Meeting,
    MeetingParticipant,
    TranscriptSegment,
    TranscriptWord,
)

__all__ = [
    "AttendanceLink",
    "CalendarEventRef",
    "ChatMessage",
    "ChatThread",
    "Citation",
    "Contact",
    "ContextBundle",
    "CRMSnapshot",
    "Meeting",
    "MeetingParticipant",
    "MeetingRef",
    "MessageRole",
    "TranscriptSegment",
    "TranscriptWord",
    "normalize_email",
]
