"""Tests for hybrid contact search."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from scribe_chat.core.exceptions import CRMProviderError
from scribe_chat.integrations.crm.credentials import CRMCredential
from scribe_chat.models.contact import Contact
from scribe_chat.services.contact_search import (
    ContactSearchResult,
    HybridContactSearch,
    merge_results,
)


def crm_provider(name: str, records=None, error=None, delay: float = 0.0) -> MagicMock:
    provider = MagicMock()
    provider.name = name

    async def search_contacts(credential, query):
        if delay:
            await asyncio.sleep(delay)
        if error is not None:
            raise error
        return records or []

    provider.search_contacts = AsyncMock(side_effect=search_contacts)
    return provider


@pytest.fixture
def contacts() -> MagicMock:
    repo = MagicMock()
    repo.search_contacts = AsyncMock(
        return_value=[
            Contact(id=1, email="jo@acme.com", name="Jo Park"),
            Contact(id=2, email="al@acme.com", name="al Stone"),
        ]
    )
    return repo


@pytest.fixture
def credentials() -> MagicMock:
    repo = MagicMock()
    repo.get_latest = AsyncMock(
        side_effect=lambda user_id, provider: CRMCredential(
            id=1, user_id=user_id, provider=provider, token="t"
        )
    )
    return repo


class TestMergeResults:
    """Tests for merge_results."""

    def test_crm_record_wins_but_keeps_local_contact_id(self):
        local = ContactSearchResult.from_contact(Contact(id=1, email="jo@acme.com", name="Jo"))
        hubspot = ContactSearchResult.from_crm_record(
            "hubspot",
            {"id": "9", "email": "JO@acme.com", "display_name": "Jo P", "jobtitle": "CFO"},
        )

        merged = merge_results([local, hubspot])

        assert len(merged) == 1
        assert merged[0].source == "hubspot"
        assert merged[0].contact_id == 1
        assert merged[0].title == "CFO"

    def test_salesforce_beats_hubspot(self):
        hubspot = ContactSearchResult.from_crm_record("hubspot", {"id": "1", "email": "a@x.com"})
        salesforce = ContactSearchResult.from_crm_record(
            "salesforce", {"id": "2", "email": "a@x.com"}
        )

        assert merge_results([hubspot, salesforce])[0].source == "salesforce"

    def test_sorted_by_lowercased_name_and_keeps_emailless(self):
        results = [
            ContactSearchResult.from_crm_record("hubspot", {"id": "1", "display_name": "zed"}),
            ContactSearchResult.from_contact(Contact(id=2, email="b@x.com", name="Bea")),
            ContactSearchResult.from_contact(Contact(id=3, email="a@x.com", name="alf")),
        ]

        assert [r.name for r in merge_results(results)] == ["alf", "Bea", "zed"]

    def test_to_mention_round_trips_into_chat_metadata(self):
        local = ContactSearchResult.from_contact(Contact(id=1, email="jo@acme.com", name="Jo"))
        merged = merge_results(
            [
                local,
                ContactSearchResult.from_crm_record(
                    "salesforce", {"id": "7", "email": "jo@acme.com", "display_name": "Jo"}
                ),
            ]
        )[0]

        mention = merged.to_mention()

        assert mention["contact_id"] == 1
        assert mention["email"] == "jo@acme.com"
        assert mention["crm_data"]["id"] == "7"


class TestHybridContactSearch:
    """Tests for HybridContactSearch.search."""

    @pytest.mark.asyncio
    async def test_merges_all_sources(self, contacts, credentials):
        record = {"id": "5", "email": "jo@acme.com", "display_name": "Jo Park"}
        hubspot = crm_provider("hubspot", [record])
        search = HybridContactSearch(contacts, credentials, [hubspot])

        results = await search.search("user-1", " jo ")

        assert [(r.name, r.source) for r in results] == [
            ("al Stone", "local"),
            ("Jo Park", "hubspot"),
        ]
        contacts.search_contacts.assert_awaited_once_with("user-1", "jo")
        assert results[1].contact_id == 1

    @pytest.mark.asyncio
    async def test_failing_provider_contributes_nothing(self, contacts, credentials):
        broken = crm_provider("hubspot", error=CRMProviderError("hubspot", status=500))
        search = HybridContactSearch(contacts, credentials, [broken])

        results = await search.search("user-1", "a")

        assert {r.source for r in results} == {"local"}

    @pytest.mark.asyncio
    async def test_slow_provider_times_out(self, contacts, credentials):
        slow = crm_provider("salesforce", [{"id": "1", "email": "s@x.com"}], delay=5)
        search = HybridContactSearch(contacts, credentials, [slow], timeout=0.05)

        results = await search.search("user-1", "a")

        assert {r.source for r in results} == {"local"}

    @pytest.mark.asyncio
    async def test_provider_without_credential_skipped(self, contacts, credentials):
        credentials.get_latest = AsyncMock(return_value=None)
        hubspot = crm_provider("hubspot", [{"id": "5", "email": "h@x.com"}])
        search = HybridContactSearch(contacts, credentials, [hubspot])

        results = await search.search("user-1", "a")

        hubspot.search_contacts.assert_not_awaited()
        assert len(results) == 2

    @pytest.mark.asyncio
    async def test_blank_query(self, contacts, credentials):
        search = HybridContactSearch(contacts, credentials, [])

        assert await search.search("user-1", "   ") == []
        contacts.search_contacts.assert_not_awaited()
