"""Recorded meetings as loaded for chat context.

Rows come from PostgREST with their participants, transcript and calendar
event embedded, so nothing downstream needs another lookup.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

UNKNOWN_SPEAKER = "Unknown Speaker"


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        # Postgres may return a trailing "Z"
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return None


def _first_embedded(value: Any) -> dict[str, Any] | None:
    """PostgREST embeds one-to-one relations as an object or a 1-item list."""
    if isinstance(value, dict):
        return value
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0]
    return None


@dataclass(frozen=True)
class TranscriptWord:
    """One recognized word span."""

    text: str
    start_seconds: float | None = None

    @classmethod
    def from_dict(cls, data: Any) -> TranscriptWord:
        if not isinstance(data, dict):
            return cls(text=str(data))
        return cls(text=str(data.get("text") or ""), start_seconds=_extract_seconds(data))


def _extract_seconds(word: dict[str, Any]) -> float | None:
    start = word.get("start_timestamp")
    if isinstance(start, dict):
        start = start.get("relative")
    if isinstance(start, (int, float)) and not isinstance(start, bool):
        return float(start)
    relative = word.get("relative")
    if isinstance(relative, (int, float)) and not isinstance(relative, bool):
        return float(relative)
    return None


@dataclass(frozen=True)
class TranscriptSegment:
    """Consecutive words attributed to one speaker."""

    speaker: str
    words: tuple[TranscriptWord, ...] = ()

    @property
    def text(self) -> str:
        return " ".join(word.text for word in self.words)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TranscriptSegment:
        return cls(
            speaker=data.get("speaker") or UNKNOWN_SPEAKER,
            words=tuple(TranscriptWord.from_dict(w) for w in data.get("words") or []),
        )


@dataclass(frozen=True)
class MeetingParticipant:
    """A participant as named by the recorder (not necessarily a Contact)."""

    name: str
    is_host: bool = False


@dataclass(frozen=True)
class CalendarEventRef:
    """The calendar event a meeting was recorded from."""

    id: int
    user_id: str
    summary: str | None = None


@dataclass(frozen=True)
class Meeting:
    """A recorded conversation with everything the prompt needs preloaded."""

    id: int
    title: str | None = None
    recorded_at: datetime | None = None
    duration_seconds: int | None = None
    participants: tuple[MeetingParticipant, ...] = ()
    transcript: tuple[TranscriptSegment, ...] | None = None
    calendar_event: CalendarEventRef | None = field(default=None, compare=False)

    @property
    def date_label(self) -> str | None:
        """Recording date as ``YYYY-MM-DD``."""
        return self.recorded_at.strftime("%Y-%m-%d") if self.recorded_at else None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Meeting:
        """Create a Meeting from a row with embedded relations.

        Expects ``meeting_participants``, ``meeting_transcripts`` and
        ``calendar_events`` embeds; missing embeds load as empty.
        """
        event_data = _first_embedded(row.get("calendar_events"))
        transcript_data = _first_embedded(row.get("meeting_transcripts"))

        transcript: tuple[TranscriptSegment, ...] | None = None
        if transcript_data is not None:
            content = transcript_data.get("content") or {}
            segments = content.get("data") if isinstance(content, dict) else None
            if isinstance(segments, list):
                transcript = tuple(
                    TranscriptSegment.from_dict(s) for s in segments if isinstance(s, dict)
                )

        duration = row.get("duration_seconds")
        return cls(
            id=int(row["id"]),
            title=row.get("title"),
            recorded_at=_parse_datetime(row.get("recorded_at")),
            duration_seconds=int(duration) if isinstance(duration, (int, float)) else None,
            participants=tuple(
                MeetingParticipant(name=p.get("name") or "", is_host=bool(p.get("is_host")))
                for p in row.get("meeting_participants") or []
                if isinstance(p, dict)
            ),
            transcript=transcript,
            calendar_event=(
                CalendarEventRef(
                    id=int(event_data["id"]),
                    user_id=str(event_data.get("user_id")),
                    summary=event_data.get("summary"),
                )
                if event_data and event_data.get("id") is not None
                else None
            ),
        )
