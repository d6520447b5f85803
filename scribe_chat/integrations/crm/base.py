"""Shared plumbing for CRM contact-search clients."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from scribe_chat.core.exceptions import CRMProviderError
from scribe_chat.core.resilience import CircuitBreaker, CircuitBreakerOpen
from scribe_chat.integrations.crm.credentials import CRMCredential
from scribe_chat.integrations.crm.field_config import CRMFieldConfig

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10


class CRMProvider(Protocol):
    """Anything that can search a CRM's contacts for a user."""

    name: str

    async def search_contacts(
        self, credential: CRMCredential, query: str
    ) -> list[dict[str, Any]]: ...


def build_display_name(record: dict[str, Any]) -> str | None:
    """``first last``, falling back to the email."""
    name = f"{record.get('firstname') or ''} {record.get('lastname') or ''}".strip()
    return name or record.get("email")


class CRMClient:
    """Base class for httpx CRM clients.

    Subclasses build the request; this class owns circuit breaking, error
    translation to ``CRMProviderError``, and mapping API field names to
    internal ones.
    """

    name: str = ""

    def __init__(
        self,
        field_config: CRMFieldConfig,
        circuit_breaker: CircuitBreaker,
        timeout: float,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.field_config = field_config
        self.circuit_breaker = circuit_breaker
        self.timeout = timeout
        self._http_client = http_client

    def _check_circuit(self) -> None:
        try:
            self.circuit_breaker.check()
        except CircuitBreakerOpen as e:
            raise CRMProviderError(
                self.name, f"{self.name} circuit breaker is open - service temporarily unavailable"
            ) from e

    async def _send(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        """Send a request and return the decoded JSON body.

        Raises:
            CRMProviderError: On an open circuit, a non-2xx status, a
                transport failure, or an undecodable body.
        """
        self._check_circuit()
        try:
            if self._http_client is not None:
                response = await self._http_client.request(
                    method, url, timeout=self.timeout, **kwargs
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            # 4xx are credential/query problems, not an outage
            if status >= 500:
                self.circuit_breaker.record_failure()
            logger.warning("%s API error: status=%s", self.name, status)
            raise CRMProviderError(self.name, f"{self.name} API error: {status}", status) from e
        except httpx.RequestError as e:
            self.circuit_breaker.record_failure()
            logger.warning("%s connection error: %s", self.name, str(e))
            raise CRMProviderError(self.name, f"Failed to connect to {self.name}: {e}") from e
        except ValueError as e:
            raise CRMProviderError(self.name, f"Invalid response from {self.name}") from e

        self.circuit_breaker.record_success()
        if not isinstance(body, dict):
            raise CRMProviderError(self.name, f"Unexpected response from {self.name}")
        return body

    def _to_internal(self, api_record: dict[str, Any]) -> dict[str, Any]:
        mapping = self.field_config.api_to_field_mapping()
        record = {internal: api_record.get(api) for api, internal in mapping.items()}
        record["display_name"] = build_display_name(record)
        return record
