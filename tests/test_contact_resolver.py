"""Tests for the contact resolution cascade."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from scribe_chat.models.contact import Contact
from scribe_chat.services.contact_resolver import (
    ContactResolver,
    ResolutionBranch,
    first_mention,
)

JO = Contact(id=7, email="jo@acme.com", name="Jo Park")


@pytest.fixture
def contacts() -> MagicMock:
    repo = MagicMock()
    repo.get_contact = AsyncMock(return_value=JO)
    repo.get_contact_by_email = AsyncMock(return_value=None)
    return repo


class TestFirstMention:
    """Tests for picking the mention out of message metadata."""

    def test_first_of_several(self):
        metadata = {"mentions": [{"email": "a@x.com"}, {"email": "b@x.com"}]}

        assert first_mention(metadata) == {"email": "a@x.com"}

    @pytest.mark.parametrize(
        "metadata",
        [None, "junk", {}, {"mentions": []}, {"mentions": "a"}, {"mentions": ["a"]}],
    )
    def test_malformed_metadata(self, metadata):
        assert first_mention(metadata) == {}


class TestCascade:
    """Each rule of the cascade, in order."""

    @pytest.mark.asyncio
    async def test_contact_id_wins(self, contacts):
        resolution = await ContactResolver(contacts).resolve(
            {"contact_id": 7, "email": "other@x.com", "crm_data": {"company": "Acme"}}
        )

        assert resolution.branch is ResolutionBranch.CONTACT
        assert resolution.contact == JO
        assert resolution.email == "jo@acme.com"
        assert resolution.crm_snapshot.company == "Acme"

    @pytest.mark.asyncio
    async def test_crm_with_email(self, contacts):
        resolution = await ContactResolver(contacts).resolve(
            {"email": "sam@x.com", "name": "Sam Lee", "crm_data": {"company": "X"}}
        )

        assert resolution.branch is ResolutionBranch.CRM_WITH_EMAIL
        assert resolution.contact is None
        assert resolution.email == "sam@x.com"
        assert resolution.display_name == "Sam Lee"

    @pytest.mark.asyncio
    async def test_crm_only(self, contacts):
        resolution = await ContactResolver(contacts).resolve(
            {"crm_data": {"firstname": "Sam", "lastname": "Lee"}}
        )

        assert resolution.branch is ResolutionBranch.CRM_ONLY
        assert resolution.email is None
        assert resolution.display_name == "Sam Lee"

    @pytest.mark.asyncio
    async def test_email_only_looks_up_local_contact(self, contacts):
        contacts.get_contact_by_email.return_value = JO

        resolution = await ContactResolver(contacts).resolve({"email": " jo@acme.com "})

        assert resolution.branch is ResolutionBranch.EMAIL_ONLY
        assert resolution.contact == JO
        contacts.get_contact_by_email.assert_awaited_once_with("jo@acme.com")

    @pytest.mark.asyncio
    async def test_email_only_without_local_contact(self, contacts):
        resolution = await ContactResolver(contacts).resolve({"email": "new@x.com"})

        assert resolution.branch is ResolutionBranch.EMAIL_ONLY
        assert resolution.contact is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mention", [None, {}, {"name": "Only A Name"}, {"email": "  "}])
    async def test_falls_back_to_recent(self, contacts, mention):
        resolution = await ContactResolver(contacts).resolve(mention)

        assert resolution.branch is ResolutionBranch.RECENT
        assert resolution.contact is None
        assert resolution.crm_snapshot is None


class TestStaleContactId:
    """A contact id that no longer resolves behaves as if it were absent."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "mention",
        [
            {"name": "Sam Lee", "email": "sam@x.com", "crm_data": {"company": "X"}},
            {"crm_data": {"display_name": "Sam Lee"}},
            {"email": "sam@x.com"},
            {"name": "Sam Lee"},
        ],
    )
    async def test_same_result_as_without_id(self, contacts, mention):
        contacts.get_contact.return_value = None
        resolver = ContactResolver(contacts)

        with_id = await resolver.resolve({"contact_id": 999, **mention})
        without_id = await resolver.resolve(mention)

        assert with_id == without_id

    @pytest.mark.asyncio
    async def test_lookup_failure_treated_as_stale(self, contacts):
        contacts.get_contact.side_effect = RuntimeError("db down")

        resolution = await ContactResolver(contacts).resolve({"contact_id": 7, "email": "a@x.com"})

        assert resolution.branch is ResolutionBranch.EMAIL_ONLY

    @pytest.mark.asyncio
    async def test_boolean_contact_id_ignored(self, contacts):
        resolution = await ContactResolver(contacts).resolve({"contact_id": True})

        assert resolution.branch is ResolutionBranch.RECENT
        contacts.get_contact.assert_not_awaited()
