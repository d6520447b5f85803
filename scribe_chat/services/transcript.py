"""Transcript rendering for the grounding prompt."""

from collections.abc import Sequence

from scribe_chat.models.meeting import TranscriptSegment

NO_TRANSCRIPT = "No transcript available"


def format_for_display(segments: Sequence[TranscriptSegment] | None) -> str:
    """Render segments as ``Speaker: text`` lines.

    Returns ``No transcript available`` for a missing or empty transcript.
    """
    if not segments:
        return NO_TRANSCRIPT
    text = "\n".join(f"{segment.speaker}: {segment.text}" for segment in segments)
    return text or NO_TRANSCRIPT
