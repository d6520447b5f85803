"""Contact search routes backing the mention picker."""

import logging
from typing import Any

from fastapi import APIRouter, Query
from pydantic import BaseModel

from scribe_chat.api.deps import ContactSearchDep, CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contacts", tags=["contacts"])


class ContactSearchItem(BaseModel):
    """A contact from local records or a connected CRM."""

    id: str
    source: str
    name: str | None = None
    email: str | None = None
    contact_id: int | None = None
    crm_id: str | None = None
    company: str | None = None
    title: str | None = None
    crm_data: dict[str, Any] | None = None


class ContactSearchResponse(BaseModel):
    """Response for a contact search."""

    contacts: list[ContactSearchItem]


@router.get("/search", response_model=ContactSearchResponse)
async def search_contacts(
    current_user: CurrentUser,
    search: ContactSearchDep,
    q: str = Query("", max_length=200, description="Name, email or phone fragment"),
) -> ContactSearchResponse:
    """Search local contacts and connected CRMs."""
    results = await search.search(user_id=current_user.id, query=q)
    logger.debug(
        "Contact search completed",
        extra={"user_id": current_user.id, "result_count": len(results)},
    )
    return ContactSearchResponse(contacts=[ContactSearchItem(**r.to_dict()) for r in results])
