"""Fetch a contact's CRM record, first provider with a match wins."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from supabase import Client

from scribe_chat.core.exceptions import CRMProviderError
from scribe_chat.integrations.crm import build_providers
from scribe_chat.integrations.crm.base import CRMProvider
from scribe_chat.integrations.crm.credentials import CredentialRepository
from scribe_chat.models.context import CRMSnapshot

logger = logging.getLogger(__name__)


class CRMSnapshotGatherer:
    """Looks a person up in the user's connected CRMs, in priority order.

    A provider is skipped when the user has no credential for it, when it
    returns no records, or when it fails. Running out of providers is not an
    error: the turn simply has no CRM data.
    """

    def __init__(self, credentials: CredentialRepository, providers: Sequence[CRMProvider]) -> None:
        """Initialize the gatherer.

        Args:
            credentials: Repository for stored CRM credentials.
            providers: Providers to try, highest priority first.
        """
        self.credentials = credentials
        self.providers = tuple(providers)

    async def gather(self, user_id: str, email: str) -> CRMSnapshot | None:
        """Return the first CRM record found for an email, normalized.

        Args:
            user_id: The acting user's ID.
            email: Email to search for.

        Returns:
            The snapshot from the highest-priority provider with a match, or None.
        """
        if not email or not email.strip():
            return None

        for provider in self.providers:
            try:
                credential = await self.credentials.get_latest(user_id, provider.name)
                if credential is None:
                    continue
                records = await provider.search_contacts(credential, email.strip())
            except CRMProviderError as e:
                logger.warning(
                    "CRM provider lookup failed, trying next provider",
                    extra={"user_id": user_id, "provider": provider.name, "status": e.status},
                )
                continue
            except Exception:
                logger.warning(
                    "CRM lookup raised unexpectedly, trying next provider",
                    extra={"user_id": user_id, "provider": provider.name},
                    exc_info=True,
                )
                continue

            if records and isinstance(records[0], dict):
                logger.info(
                    "CRM snapshot found",
                    extra={"user_id": user_id, "provider": provider.name},
                )
                return CRMSnapshot.from_mapping(records[0], provider=provider.name)

        return None


def build_crm_snapshot_gatherer(db_client: Client) -> CRMSnapshotGatherer:
    """Default gatherer: providers tried in ``SUPPORTED_CRMS`` order."""
    return CRMSnapshotGatherer(
        CredentialRepository(db_client),
        build_providers(),
    )
