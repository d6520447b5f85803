"""Salesforce contact search client (SOQL over the REST query endpoint)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from scribe_chat.core.config import settings
from scribe_chat.core.exceptions import CRMProviderError
from scribe_chat.core.resilience import CircuitBreaker, salesforce_circuit_breaker
from scribe_chat.integrations.crm.base import SEARCH_LIMIT, CRMClient
from scribe_chat.integrations.crm.credentials import CRMCredential
from scribe_chat.integrations.crm.field_config import SALESFORCE, SALESFORCE_FIELDS

logger = logging.getLogger(__name__)


def escape_soql(value: str) -> str:
    """Escape a value for use inside a single-quoted SOQL literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class SalesforceClient(CRMClient):
    """Searches Salesforce Contact records with SOQL."""

    name = SALESFORCE

    def __init__(
        self,
        api_version: str | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            SALESFORCE_FIELDS,
            circuit_breaker or salesforce_circuit_breaker,
            settings.CRM_REQUEST_TIMEOUT_SECONDS,
            http_client,
        )
        self.api_version = api_version or settings.SALESFORCE_API_VERSION

    def build_query(self, query: str) -> str:
        fields = ", ".join(["Id", *self.field_config.api_field_names(), "Account.Name"])
        term = escape_soql(query)
        return (
            f"SELECT {fields} FROM Contact "
            f"WHERE Name LIKE '%{term}%' OR Email LIKE '%{term}%' OR Phone LIKE '%{term}%' "
            f"LIMIT {SEARCH_LIMIT}"
        )

    async def search_contacts(self, credential: CRMCredential, query: str) -> list[dict[str, Any]]:
        """Search contacts by name, email or phone.

        Raises:
            CRMProviderError: If the credential has no instance URL, or
                Salesforce fails or cannot be reached.
        """
        if not credential.instance_url:
            raise CRMProviderError(self.name, "Salesforce credential has no instance URL")

        body = await self._send(
            "GET",
            f"{credential.instance_url.rstrip('/')}/services/data/{self.api_version}/query/",
            headers={"Authorization": f"Bearer {credential.token}"},
            params={"q": self.build_query(query)},
        )
        contacts = []
        for item in body.get("records") or []:
            if not isinstance(item, dict) or item.get("Id") is None:
                continue
            record = self._to_internal(item)
            record["id"] = str(item["Id"])
            account = item.get("Account")
            record["company"] = account.get("Name") if isinstance(account, dict) else None
            contacts.append(record)
        logger.debug("Salesforce search returned %d contacts", len(contacts))
        return contacts
