"""Grounding prompt and multi-turn payload for chat responses.

Everything here is a pure function of its inputs: the same ContextBundle
always renders the same bytes. The meeting link format the model is told to
use is the same pattern ``citations`` parses back out.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from scribe_chat.models.chat import ChatMessage, MessageRole
from scribe_chat.models.contact import Contact
from scribe_chat.models.context import ContextBundle, CRMSnapshot, MeetingRef
from scribe_chat.models.meeting import Meeting
from scribe_chat.services.transcript import format_for_display

MEETING_LINK_PATTERN = re.compile(r"\[([^\]]+)\]\(meeting:(\d+)\)")

MEETING_LINK_INSTRUCTION = (
    "- When referencing a meeting, mention the date naturally as a link using format: "
    "[Month Day, Year](meeting:{meeting_id})\n"
    '  Example: "In a meeting on [January 15, 2025](meeting:123), they discussed..." '
    'or "During the [November 3, 2025](meeting:456) call..."'
)

ACKNOWLEDGEMENT = (
    "I understand. I'll answer questions based only on the provided context about this contact."
)

NO_MEETINGS = "No meetings found with this contact."
MEETING_SEPARATOR = "\n\n---\n\n"
UNKNOWN = "Unknown"

POTENTIAL_MEETINGS_HEADER = """
POTENTIAL MEETINGS (matched by first name only - USE WITH CAUTION):
⚠️ IMPORTANT: No meetings were found with an exact email match for this contact.
The meetings below were found by matching the contact's first name to meeting participants.
This is NOT a confirmed match - different people may share the same first name.

Guidelines:
1. Only use information from these meetings if the context (topic, company, participants) clearly matches the contact
2. Look for the meeting with strong contextual evidence when reviewing the details against the questions being asked to determine if it's likely to be the same person
3. The email mismatched which is why we should not use it to compare whether this was the user or not
4. Mention in your response that these meetings were based on the participant's name only and may not be the same person in a concise manner
5. If there is any uncertainty, it's better to state that you don't have enough information rather than risk providing inaccurate information

"""


def _framing(has_contact_context: bool) -> tuple[str, str, str]:
    """(intro, disallowed-information clause, meeting section label)."""
    if has_contact_context:
        return (
            "business contacts based on meeting history and CRM data",
            " or contact data",
            "MEETING",
        )
    return ("the user's recent meetings", "", "RECENT MEETING")


def _or_unknown(*values: str | None) -> str:
    for value in values:
        if value:
            return value
    return UNKNOWN


def format_duration(seconds: int | None) -> str:
    if seconds is None:
        return UNKNOWN
    return f"{seconds // 60} minutes"


def format_meeting(meeting: Meeting) -> str:
    """Render one meeting block (ends with a newline)."""
    lines = [
        f"### Meeting: {meeting.title or 'Untitled Meeting'}",
        f"ID: {meeting.id}",
        f"Date: {meeting.date_label or 'Unknown date'}",
        f"Duration: {format_duration(meeting.duration_seconds)}",
    ]
    if meeting.participants:
        lines.append("Participants: " + ", ".join(p.name for p in meeting.participants))
    lines += ["", "Transcript:", format_for_display(meeting.transcript)]
    return "\n".join(lines) + "\n"


def format_meetings(meetings: Sequence[Meeting]) -> str:
    if not meetings:
        return NO_MEETINGS
    return MEETING_SEPARATOR.join(format_meeting(m) for m in meetings)


def format_potential_meetings(meetings: Sequence[Meeting]) -> str:
    """Cautionary block for first-name matches; empty when there are none."""
    if not meetings:
        return ""
    return POTENTIAL_MEETINGS_HEADER + format_meetings(meetings) + "\n"


def _contact_lines(contact: Contact | None, snapshot: CRMSnapshot | None) -> list[str]:
    if contact is not None and snapshot is None:
        return [f"Name: {contact.name or UNKNOWN}", f"Email: {contact.email}"]
    if contact is not None and snapshot is not None:
        return [
            f"Name: {_or_unknown(snapshot.display_name, contact.name)}",
            f"Email: {contact.email}",
            f"Company: {_or_unknown(snapshot.company)}",
            f"Title: {_or_unknown(snapshot.title)}",
            f"Phone: {_or_unknown(snapshot.phone)}",
        ]
    if snapshot is not None:
        lines = [
            f"Name: {_or_unknown(snapshot.display_name)}",
            f"Email: {_or_unknown(snapshot.email)}",
            f"Company: {_or_unknown(snapshot.company)}",
            f"Title: {_or_unknown(snapshot.title)}",
            f"Phone: {_or_unknown(snapshot.phone)}",
        ]
        if snapshot.department:
            lines.append(f"Department: {snapshot.department}")
        return lines
    return []


def format_contact_section(contact: Contact | None, snapshot: CRMSnapshot | None) -> str:
    lines = _contact_lines(contact, snapshot)
    if not lines:
        return ""
    return "\nCONTACT INFORMATION:\n" + "\n".join(lines) + "\n\n"


def build_system_context(bundle: ContextBundle) -> str:
    """Render the grounding prompt for a context bundle.

    Args:
        bundle: The turn's context.

    Returns:
        The system prompt text; identical bytes for identical bundles.
    """
    intro, info_source, label = _framing(bundle.has_contact_context)
    meetings = bundle.confirmed_meetings
    return (
        f"You are a helpful assistant that answers questions about {intro}.\n"
        "\n"
        "RULES:\n"
        "- Be concise and direct\n"
        "- Base your answers ONLY on the context provided below\n"
        f"- If information is not in the meeting transcripts{info_source}, "
        "clearly state that you don't have that information\n"
        "- Never guess, infer, or make up information\n"
        f"{MEETING_LINK_INSTRUCTION}\n"
        "- Format responses in markdown\n"
        f"{format_contact_section(bundle.contact, bundle.crm_snapshot)}\n"
        f"{label} HISTORY (most recent first, last {len(meetings)} meetings):\n"
        f"{format_meetings(meetings)}\n"
        f"{format_potential_meetings(bundle.heuristic_meetings)}\n"
    )


def build_turns(
    bundle: ContextBundle,
    history: Sequence[ChatMessage],
    question: str,
) -> list[dict[str, str]]:
    """Build the Anthropic ``messages`` list for a turn.

    The system context goes in as a user turn followed by a fixed
    acknowledgement; stored user messages equal to the current question are
    dropped from history so the question is asked exactly once, last.
    """
    turns = [
        {"role": "user", "content": build_system_context(bundle)},
        {"role": "assistant", "content": ACKNOWLEDGEMENT},
    ]
    for message in history:
        if message.role is MessageRole.USER and message.content == question:
            continue
        turns.append({"role": message.role.value, "content": message.content})
    turns.append({"role": "user", "content": question})
    return turns


def build_meeting_refs(bundle: ContextBundle) -> list[MeetingRef]:
    return [MeetingRef.from_meeting(m) for m in bundle.surfaced_meetings]


def build_response_metadata(bundle: ContextBundle) -> dict[str, Any]:
    """Assistant message metadata: every meeting the model was shown."""
    return {"meeting_refs": [ref.to_dict() for ref in build_meeting_refs(bundle)]}
