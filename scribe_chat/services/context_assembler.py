"""Compose contact resolution, meeting evidence and CRM data into a ContextBundle."""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import Any, TypeVar

from scribe_chat.models.context import ContextBundle, CRMSnapshot
from scribe_chat.models.meeting import Meeting
from scribe_chat.services.contact_resolver import (
    ContactResolver,
    Resolution,
    ResolutionBranch,
    first_mention,
)
from scribe_chat.services.crm_snapshot import CRMSnapshotGatherer
from scribe_chat.services.meeting_evidence import MeetingEvidenceFinder

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ContextAssembler:
    """Builds the grounding context for one chat turn.

    Failures while gathering meetings or CRM data leave that slice empty;
    assembly itself never fails a turn.
    """

    def __init__(
        self,
        resolver: ContactResolver,
        evidence: MeetingEvidenceFinder,
        crm: CRMSnapshotGatherer,
    ) -> None:
        self.resolver = resolver
        self.evidence = evidence
        self.crm = crm

    async def _degrade(self, slice_name: str, user_id: str, call: Awaitable[T], empty: T) -> T:
        try:
            return await call
        except Exception:
            logger.warning(
                "Context slice unavailable, continuing without it",
                extra={"user_id": user_id, "slice": slice_name},
                exc_info=True,
            )
            return empty

    async def assemble(self, user_id: str, metadata: Any) -> ContextBundle:
        """Resolve the message's first mention and gather its evidence.

        Args:
            user_id: The acting user's ID.
            metadata: The user message's metadata bag.

        Returns:
            An immutable ContextBundle.
        """
        resolution = await self.resolve(user_id, metadata)
        return await self.gather(user_id, resolution)

    async def resolve(self, user_id: str, metadata: Any) -> Resolution:
        """Resolve which contact the message's first mention refers to."""
        resolution = await self.resolver.resolve(first_mention(metadata))
        logger.debug(
            "Contact resolved",
            extra={"user_id": user_id, "branch": resolution.branch.value},
        )
        return resolution

    async def gather(self, user_id: str, resolution: Resolution) -> ContextBundle:
        """Collect meetings and CRM data for a resolved contact."""
        if resolution.branch is ResolutionBranch.RECENT:
            recent = await self._degrade(
                "recent_meetings", user_id, self.evidence.find_recent(user_id), []
            )
            return ContextBundle(confirmed_meetings=tuple(recent))

        confirmed = await self._confirmed_meetings(user_id, resolution)
        snapshot = await self._crm_snapshot(user_id, resolution)

        heuristic: list[Meeting] = []
        # name matches only stand in for confirmed evidence, never add to it
        if not confirmed:
            name = resolution.display_name
            if name is None and snapshot is not None:
                name = snapshot.display_name
            heuristic = await self._degrade(
                "heuristic_meetings", user_id, self.evidence.find_heuristic(user_id, name), []
            )

        return ContextBundle(
            contact=resolution.contact,
            crm_snapshot=snapshot,
            confirmed_meetings=tuple(confirmed),
            heuristic_meetings=tuple(heuristic),
        )

    async def _confirmed_meetings(self, user_id: str, resolution: Resolution) -> list[Meeting]:
        if resolution.contact is not None:
            call = self.evidence.find_confirmed(user_id, resolution.contact)
        elif resolution.branch is ResolutionBranch.CRM_WITH_EMAIL and resolution.email:
            call = self.evidence.find_confirmed_by_email(user_id, resolution.email)
        else:
            return []
        return await self._degrade("confirmed_meetings", user_id, call, [])

    async def _crm_snapshot(self, user_id: str, resolution: Resolution) -> CRMSnapshot | None:
        if resolution.crm_snapshot is not None:
            return resolution.crm_snapshot
        if resolution.branch in (ResolutionBranch.CONTACT, ResolutionBranch.EMAIL_ONLY):
            email = resolution.email
            if email:
                return await self._degrade(
                    "crm_snapshot", user_id, self.crm.gather(user_id, email), None
                )
        return None
