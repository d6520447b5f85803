"""Tests for CRMSnapshotGatherer and CredentialRepository."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import mock_db, mock_query

from scribe_chat.core.exceptions import CRMProviderError, DatabaseError
from scribe_chat.integrations.crm.credentials import CRMCredential, CredentialRepository
from scribe_chat.integrations.crm.field_config import SUPPORTED_CRMS
from scribe_chat.services.crm_snapshot import CRMSnapshotGatherer, build_crm_snapshot_gatherer

BOTH = ("hubspot", "salesforce")


def provider(name: str, records=None, error: Exception | None = None) -> MagicMock:
    mock = MagicMock()
    mock.name = name
    mock.search_contacts = AsyncMock(return_value=records or [], side_effect=error)
    return mock


def credentials_for(*providers: str) -> MagicMock:
    repo = MagicMock()

    async def get_latest(user_id: str, name: str) -> CRMCredential | None:
        if name not in providers:
            return None
        return CRMCredential(id=1, user_id=user_id, provider=name, token="t")

    repo.get_latest = AsyncMock(side_effect=get_latest)
    return repo


class TestGather:
    """Provider priority and failure handling."""

    @pytest.mark.asyncio
    async def test_first_provider_with_records_wins(self):
        hubspot = provider("hubspot", [{"id": "1", "display_name": "From HubSpot"}])
        salesforce = provider("salesforce", [{"id": "2", "display_name": "From Salesforce"}])
        gatherer = CRMSnapshotGatherer(credentials_for(*BOTH), [hubspot, salesforce])

        snapshot = await gatherer.gather("u1", "jo@acme.com")

        assert snapshot.display_name == "From HubSpot"
        assert snapshot.provider == "hubspot"
        salesforce.search_contacts.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_result_falls_through(self):
        hubspot = provider("hubspot", [])
        salesforce = provider("salesforce", [{"id": "2", "jobtitle": "CTO"}])
        gatherer = CRMSnapshotGatherer(credentials_for(*BOTH), [hubspot, salesforce])

        snapshot = await gatherer.gather("u1", "jo@acme.com")

        assert snapshot.provider == "salesforce"
        assert snapshot.title == "CTO"

    @pytest.mark.asyncio
    async def test_provider_error_falls_through(self):
        hubspot = provider("hubspot", error=CRMProviderError("hubspot", status=500))
        salesforce = provider("salesforce", [{"id": "2"}])
        gatherer = CRMSnapshotGatherer(credentials_for(*BOTH), [hubspot, salesforce])

        snapshot = await gatherer.gather("u1", "jo@acme.com")

        assert snapshot.crm_id == "2"

    @pytest.mark.asyncio
    async def test_credential_lookup_failure_falls_through(self):
        repo = credentials_for(*BOTH)
        lookup = repo.get_latest.side_effect

        async def failing_for_hubspot(user_id: str, name: str):
            if name == "hubspot":
                raise DatabaseError("credential store unavailable")
            return await lookup(user_id, name)

        repo.get_latest.side_effect = failing_for_hubspot
        hubspot = provider("hubspot", [{"id": "1"}])
        salesforce = provider("salesforce", [{"id": "2"}])
        gatherer = CRMSnapshotGatherer(repo, [hubspot, salesforce])

        snapshot = await gatherer.gather("u1", "jo@acme.com")

        assert snapshot.provider == "salesforce"
        assert snapshot.crm_id == "2"
        hubspot.search_contacts.assert_not_awaited()
        salesforce.search_contacts.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unexpected_provider_error_falls_through(self):
        hubspot = provider("hubspot", error=RuntimeError("boom"))
        salesforce = provider("salesforce", [{"id": "2"}])
        gatherer = CRMSnapshotGatherer(credentials_for(*BOTH), [hubspot, salesforce])

        snapshot = await gatherer.gather("u1", "jo@acme.com")

        assert snapshot.crm_id == "2"
        salesforce.search_contacts.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_provider_without_credential_is_skipped(self):
        hubspot = provider("hubspot", [{"id": "1"}])
        salesforce = provider("salesforce", [{"id": "2"}])
        gatherer = CRMSnapshotGatherer(credentials_for("salesforce"), [hubspot, salesforce])

        snapshot = await gatherer.gather("u1", "jo@acme.com")

        assert snapshot.provider == "salesforce"
        hubspot.search_contacts.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_all_failing_returns_none(self):
        hubspot = provider("hubspot", error=CRMProviderError("hubspot"))
        salesforce = provider("salesforce", [])
        gatherer = CRMSnapshotGatherer(credentials_for(*BOTH), [hubspot, salesforce])

        assert await gatherer.gather("u1", "jo@acme.com") is None

    @pytest.mark.asyncio
    async def test_blank_email_skips_providers(self):
        hubspot = provider("hubspot", [{"id": "1"}])
        gatherer = CRMSnapshotGatherer(credentials_for("hubspot"), [hubspot])

        assert await gatherer.gather("u1", "  ") is None
        hubspot.search_contacts.assert_not_awaited()


    def test_default_gatherer_follows_supported_crms(self):
        gatherer = build_crm_snapshot_gatherer(MagicMock())

        assert tuple(p.name for p in gatherer.providers) == SUPPORTED_CRMS


class TestCredentialRepository:
    """Tests for picking the latest credential."""

    @pytest.mark.asyncio
    async def test_latest_credential(self):
        row = {
            "id": 4,
            "user_id": "u1",
            "provider": "salesforce",
            "token": "t",
            "instance_url": "https://x",
        }
        query = mock_query([row])
        repo = CredentialRepository(mock_db(user_credentials=query))

        credential = await repo.get_latest("u1", "salesforce")

        assert credential.id == 4
        assert credential.instance_url == "https://x"
        query.order.assert_any_call("inserted_at", desc=True)
        query.order.assert_any_call("id", desc=True)

    @pytest.mark.asyncio
    async def test_no_credential(self):
        repo = CredentialRepository(mock_db(user_credentials=mock_query([])))

        assert await repo.get_latest("u1", "hubspot") is None
