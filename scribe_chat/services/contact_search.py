"""Contact search across local contacts and the user's connected CRMs.

All sources are searched concurrently under one timeout; slow or failing
sources contribute nothing. Results are merged by email: CRM data wins
(Salesforce before HubSpot) but the local ``contact_id`` is kept so the
chat can find confirmed meetings.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from supabase import Client

from scribe_chat.core.config import settings
from scribe_chat.integrations.crm import build_providers
from scribe_chat.integrations.crm.base import CRMProvider
from scribe_chat.integrations.crm.credentials import CredentialRepository
from scribe_chat.integrations.crm.field_config import HUBSPOT, SALESFORCE
from scribe_chat.models.contact import Contact
from scribe_chat.services.contacts import ContactRepository

logger = logging.getLogger(__name__)

LOCAL = "local"

# Which record survives when several sources share an email
_MERGE_PRIORITY = (SALESFORCE, HUBSPOT, LOCAL)


@dataclass(frozen=True)
class ContactSearchResult:
    """One entry in the contact picker."""

    id: str
    source: str
    name: str | None
    email: str | None
    contact_id: int | None = None
    crm_id: str | None = None
    company: str | None = None
    title: str | None = None
    crm_data: dict[str, Any] | None = field(default=None, compare=False)

    @classmethod
    def from_contact(cls, contact: Contact) -> ContactSearchResult:
        return cls(
            id=f"{LOCAL}:{contact.id}",
            source=LOCAL,
            name=contact.display_name,
            email=contact.email,
            contact_id=contact.id,
        )

    @classmethod
    def from_crm_record(cls, provider: str, record: dict[str, Any]) -> ContactSearchResult:
        crm_id = str(record.get("id"))
        return cls(
            id=f"{provider}:{crm_id}",
            source=provider,
            name=record.get("display_name"),
            email=record.get("email"),
            crm_id=crm_id,
            company=record.get("company"),
            title=record.get("jobtitle") or record.get("title"),
            crm_data=dict(record),
        )

    def to_mention(self) -> dict[str, Any]:
        """The mention payload a client sends back with a chat message."""
        mention: dict[str, Any] = {"name": self.name, "email": self.email}
        if self.contact_id is not None:
            mention["contact_id"] = self.contact_id
        if self.crm_data is not None:
            mention["crm_data"] = self.crm_data
        return mention

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "contact_id": self.contact_id,
            "crm_id": self.crm_id,
            "source": self.source,
            "name": self.name,
            "email": self.email,
            "company": self.company,
            "title": self.title,
            "crm_data": self.crm_data,
        }


def merge_results(results: Sequence[ContactSearchResult]) -> list[ContactSearchResult]:
    """Deduplicate by lower-cased email and sort by lower-cased name."""
    by_email: dict[str, list[ContactSearchResult]] = {}
    no_email: list[ContactSearchResult] = []
    for result in results:
        if result.email:
            by_email.setdefault(result.email.lower(), []).append(result)
        else:
            no_email.append(result)

    merged: list[ContactSearchResult] = []
    for group in by_email.values():
        by_source = {}
        for result in group:
            by_source.setdefault(result.source, result)
        best = next(by_source[s] for s in _MERGE_PRIORITY if s in by_source)
        local = by_source.get(LOCAL)
        if local is not None and best is not local:
            best = replace(best, contact_id=local.contact_id)
        merged.append(best)

    return sorted(merged + no_email, key=lambda r: ((r.name or "").lower(), r.id))


class HybridContactSearch:
    """Searches local contacts and connected CRMs in parallel."""

    def __init__(
        self,
        contacts: ContactRepository,
        credentials: CredentialRepository,
        providers: Sequence[CRMProvider],
        timeout: float | None = None,
    ) -> None:
        self.contacts = contacts
        self.credentials = credentials
        self.providers = tuple(providers)
        self.timeout = timeout or settings.CRM_SEARCH_TIMEOUT_SECONDS

    async def _search_local(self, user_id: str, query: str) -> list[ContactSearchResult]:
        contacts = await self.contacts.search_contacts(user_id, query)
        return [ContactSearchResult.from_contact(c) for c in contacts]

    async def _search_provider(
        self, provider: CRMProvider, user_id: str, query: str
    ) -> list[ContactSearchResult]:
        credential = await self.credentials.get_latest(user_id, provider.name)
        if credential is None:
            return []
        records = await provider.search_contacts(credential, query)
        return [
            ContactSearchResult.from_crm_record(provider.name, r)
            for r in records
            if isinstance(r, dict) and r.get("id") is not None
        ]

    async def search(self, user_id: str, query: str) -> list[ContactSearchResult]:
        """Search every source and merge the results.

        Args:
            user_id: The acting user's ID.
            query: Name, email or phone fragment.

        Returns:
            Merged results sorted by name; empty for a blank query.
        """
        if not query or not query.strip():
            return []
        query = query.strip()

        sources: dict[asyncio.Task[list[ContactSearchResult]], str] = {
            asyncio.create_task(self._search_local(user_id, query)): LOCAL
        }
        for provider in self.providers:
            task = asyncio.create_task(self._search_provider(provider, user_id, query))
            sources[task] = provider.name

        done, pending = await asyncio.wait(sources, timeout=self.timeout)
        for task in pending:
            task.cancel()
            logger.warning(
                "Contact search source timed out",
                extra={"user_id": user_id, "source": sources[task]},
            )

        results: list[ContactSearchResult] = []
        for task in done:
            exc = task.exception()
            if exc is not None:
                logger.warning(
                    "Contact search source failed",
                    extra={"user_id": user_id, "source": sources[task], "error": str(exc)},
                )
                continue
            results.extend(task.result())

        return merge_results(results)


def build_contact_search(db_client: Client) -> HybridContactSearch:
    """Default hybrid search: local contacts, HubSpot and Salesforce."""
    return HybridContactSearch(
        ContactRepository(db_client),
        CredentialRepository(db_client),
        build_providers(),
    )
