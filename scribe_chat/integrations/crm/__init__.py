"""CRM provider clients, field tables and stored credentials."""

from scribe_chat.integrations.crm.base import CRMProvider
from scribe_chat.integrations.crm.credentials import CredentialRepository, CRMCredential
from scribe_chat.integrations.crm.field_config import (
    HUBSPOT,
    SALESFORCE,
    SUPPORTED_CRMS,
    CRMField,
    CRMFieldConfig,
    for_crm,
)
from scribe_chat.integrations.crm.hubspot import HubSpotClient
from scribe_chat.integrations.crm.salesforce import SalesforceClient

_CLIENTS: dict[str, type[HubSpotClient] | type[SalesforceClient]] = {
    HUBSPOT: HubSpotClient,
    SALESFORCE: SalesforceClient,
}


def build_providers() -> list[CRMProvider]:
    """Default clients for every supported CRM, in ``SUPPORTED_CRMS`` order."""
    return [_CLIENTS[name]() for name in SUPPORTED_CRMS]


__all__ = [
    "HUBSPOT",
    "SALESFORCE",
    "SUPPORTED_CRMS",
    "CRMCredential",
    "CRMField",
    "CRMFieldConfig",
    "CRMProvider",
    "CredentialRepository",
    "HubSpotClient",
    "SalesforceClient",
    "build_providers",
    "for_crm",
]
