"""Shared fixtures for Scribe Chat tests."""

from datetime import UTC, datetime
from typing import Any
from unittest.mock import MagicMock

import pytest

from scribe_chat.models.meeting import (
    Meeting,
    MeetingParticipant,
    TranscriptSegment,
    TranscriptWord,
)

# PostgREST builder methods that return the builder itself
_CHAIN_METHODS = (
    "select",
    "insert",
    "update",
    "eq",
    "in_",
    "ilike",
    "or_",
    "is_",
    "order",
    "limit",
    "offset",
)


def mock_query(data: Any = None) -> MagicMock:
    """A self-returning query builder whose ``execute()`` yields ``data``."""
    query = MagicMock()
    for name in _CHAIN_METHODS:
        getattr(query, name).return_value = query
    query.execute.return_value = MagicMock(data=data if data is not None else [])
    return query


def mock_db(**tables: MagicMock) -> MagicMock:
    """A Supabase client whose ``table(name)`` returns the given queries."""
    db = MagicMock()
    db.table.side_effect = lambda name: tables.get(name) or mock_query([])
    return db


def sample_transcript() -> tuple[TranscriptSegment, ...]:
    return (
        TranscriptSegment(
            speaker="John",
            words=(
                TranscriptWord("Hello everyone,", 5.0),
                TranscriptWord("let's get started.", 6.5),
            ),
        ),
        TranscriptSegment(
            speaker="Jane",
            words=(
                TranscriptWord("Sounds good,", 10.0),
                TranscriptWord("I have the agenda ready.", 11.5),
            ),
        ),
    )


def make_meeting(
    meeting_id: int,
    title: str = "Sync",
    recorded_at: datetime | None = None,
    participants: tuple[str, ...] = ("John Doe", "Jane Smith"),
) -> Meeting:
    return Meeting(
        id=meeting_id,
        title=title,
        recorded_at=recorded_at or datetime(2025, 1, 15, 10, 0, tzinfo=UTC),
        duration_seconds=1800,
        participants=tuple(
            MeetingParticipant(name=name, is_host=i == 0) for i, name in enumerate(participants)
        ),
        transcript=sample_transcript(),
    )


def meeting_row(
    meeting_id: int,
    title: str = "Sync",
    recorded_at: str | None = "2025-01-15T10:00:00Z",
    participants: tuple[str, ...] = ("John Doe",),
) -> dict[str, Any]:
    """A ``meetings`` row with its embeds, as PostgREST returns it."""
    return {
        "id": meeting_id,
        "title": title,
        "recorded_at": recorded_at,
        "duration_seconds": 1800,
        "calendar_events": {"id": 100 + meeting_id, "user_id": "user-1", "summary": title},
        "meeting_participants": [{"name": name, "is_host": False} for name in participants],
        "meeting_transcripts": [
            {
                "content": {
                    "data": [
                        {
                            "speaker": "John",
                            "words": [{"text": "Hi", "start_timestamp": 1.0}],
                        }
                    ]
                }
            }
        ],
    }


@pytest.fixture
def mock_current_user() -> MagicMock:
    """Create mock current user."""
    user = MagicMock()
    user.id = "test-user-123"
    return user
