"""CRM contact field tables.

Each provider's table is plain data: internal field name, UI label, the
provider's API name where it differs, and a grouping category.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

HUBSPOT = "hubspot"
SALESFORCE = "salesforce"


@dataclass(frozen=True)
class CRMField:
    """One contact field exposed by a CRM."""

    name: str
    label: str
    api_name: str | None = None
    category: str | None = None

    @property
    def remote_name(self) -> str:
        return self.api_name or self.name


@dataclass(frozen=True)
class CRMFieldConfig:
    """Field table for one CRM provider."""

    provider: str
    display_name: str
    fields: tuple[CRMField, ...]

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def field_labels(self) -> dict[str, str]:
        return {f.name: f.label for f in self.fields}

    def field_to_api_mapping(self) -> dict[str, str]:
        """Internal name to API name, only where the two differ."""
        return {f.name: f.api_name for f in self.fields if f.api_name and f.api_name != f.name}

    def api_field_names(self) -> list[str]:
        return [f.remote_name for f in self.fields]

    def api_to_field_mapping(self) -> dict[str, str]:
        return {f.remote_name: f.name for f in self.fields}

    def fields_by_category(self) -> dict[str, list[CRMField]]:
        grouped: dict[str, list[CRMField]] = {}
        for f in self.fields:
            grouped.setdefault(f.category or "other", []).append(f)
        return grouped


def _table(*rows: Sequence[str | None]) -> tuple[CRMField, ...]:
    return tuple(CRMField(name, label, api_name, category) for name, label, api_name, category in rows)


HUBSPOT_FIELDS = CRMFieldConfig(
    provider=HUBSPOT,
    display_name="HubSpot",
    fields=_table(
        ("firstname", "First Name", None, "basic"),
        ("lastname", "Last Name", None, "basic"),
        ("email", "Email", None, "basic"),
        ("phone", "Phone", None, "phone"),
        ("mobilephone", "Mobile Phone", None, "phone"),
        ("company", "Company", None, "work"),
        ("jobtitle", "Job Title", None, "work"),
        ("address", "Address", None, "address"),
        ("city", "City", None, "address"),
        ("state", "State", None, "address"),
        ("zip", "ZIP Code", None, "address"),
        ("country", "Country", None, "address"),
        ("website", "Website", None, "online"),
        ("linkedin_url", "LinkedIn", "hs_linkedin_url", "online"),
        ("twitter_handle", "Twitter", "twitterhandle", "online"),
    ),
)

# Company is the Account.Name relationship in Salesforce, not a Contact field
SALESFORCE_FIELDS = CRMFieldConfig(
    provider=SALESFORCE,
    display_name="Salesforce",
    fields=_table(
        ("firstname", "First Name", "FirstName", "basic"),
        ("lastname", "Last Name", "LastName", "basic"),
        ("email", "Email", "Email", "basic"),
        ("phone", "Phone", "Phone", "phone"),
        ("mobilephone", "Mobile Phone", "MobilePhone", "phone"),
        ("title", "Job Title", "Title", "work"),
        ("department", "Department", "Department", "work"),
        ("address", "Address", "MailingStreet", "address"),
        ("city", "City", "MailingCity", "address"),
        ("state", "State", "MailingState", "address"),
        ("zip", "ZIP Code", "MailingPostalCode", "address"),
        ("country", "Country", "MailingCountry", "address"),
    ),
)

_REGISTRY: dict[str, CRMFieldConfig] = {HUBSPOT: HUBSPOT_FIELDS, SALESFORCE: SALESFORCE_FIELDS}

# Snapshot lookup order: first provider with a record wins (see build_providers)
SUPPORTED_CRMS: tuple[str, ...] = (HUBSPOT, SALESFORCE)


def for_crm(provider: str) -> CRMFieldConfig:
    """Field table for a provider.

    Raises:
        KeyError: If the provider is not supported.
    """
    return _REGISTRY[provider]
