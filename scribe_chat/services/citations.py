"""Parse ``[label](meeting:id)`` citations out of assistant replies."""

from collections.abc import Iterable, Mapping
from typing import Any

from scribe_chat.models.context import Citation
from scribe_chat.services.prompt_builder import MEETING_LINK_PATTERN


def parse_citations(content: str, meeting_refs: Iterable[Mapping[str, Any]] = ()) -> list[Citation]:
    """Extract meeting citations from reply text.

    Args:
        content: The assistant's reply.
        meeting_refs: The turn's ``meeting_refs``; cited ids found here are
            marked verified and take their title and date.

    Returns:
        Citations in order of appearance. A meeting cited twice appears twice.
    """
    refs: dict[int, Mapping[str, Any]] = {}
    for ref in meeting_refs:
        meeting_id = ref.get("meeting_id")
        if isinstance(meeting_id, int):
            refs.setdefault(meeting_id, ref)

    citations = []
    for match in MEETING_LINK_PATTERN.finditer(content or ""):
        meeting_id = int(match.group(2))
        ref = refs.get(meeting_id)
        citations.append(
            Citation(
                label=match.group(1),
                meeting_id=meeting_id,
                title=ref.get("title") if ref else None,
                date=ref.get("date") if ref else None,
                verified=ref is not None,
            )
        )
    return citations
