"""HubSpot contact search client."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from scribe_chat.core.config import settings
from scribe_chat.core.resilience import CircuitBreaker, hubspot_circuit_breaker
from scribe_chat.integrations.crm.base import SEARCH_LIMIT, CRMClient
from scribe_chat.integrations.crm.credentials import CRMCredential
from scribe_chat.integrations.crm.field_config import HUBSPOT, HUBSPOT_FIELDS

logger = logging.getLogger(__name__)


class HubSpotClient(CRMClient):
    """Searches contacts through the HubSpot CRM v3 search endpoint."""

    name = HUBSPOT

    def __init__(
        self,
        base_url: str | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            HUBSPOT_FIELDS,
            circuit_breaker or hubspot_circuit_breaker,
            settings.CRM_REQUEST_TIMEOUT_SECONDS,
            http_client,
        )
        self.base_url = (base_url or settings.HUBSPOT_API_BASE_URL).rstrip("/")

    async def search_contacts(self, credential: CRMCredential, query: str) -> list[dict[str, Any]]:
        """Full-text search over contacts (name, email, phone, company).

        Args:
            credential: The user's HubSpot credential.
            query: Search text, usually an email.

        Returns:
            Up to 10 records keyed by internal field names, plus ``id`` and
            ``display_name``.

        Raises:
            CRMProviderError: If HubSpot fails or cannot be reached.
        """
        body = await self._send(
            "POST",
            f"{self.base_url}/crm/v3/objects/contacts/search",
            headers={
                "Authorization": f"Bearer {credential.token}",
                "Content-Type": "application/json",
            },
            json={
                "query": query,
                "limit": SEARCH_LIMIT,
                "properties": self.field_config.api_field_names(),
            },
        )
        results = body.get("results") or []
        contacts = []
        for item in results:
            if not isinstance(item, dict) or item.get("id") is None:
                continue
            record = self._to_internal(item.get("properties") or {})
            record["id"] = str(item["id"])
            contacts.append(record)
        logger.debug("HubSpot search returned %d contacts", len(contacts))
        return contacts
