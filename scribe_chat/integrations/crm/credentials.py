"""Stored CRM OAuth credentials."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from supabase import Client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CRMCredential:
    """An OAuth credential a user connected for one CRM provider."""

    id: int
    user_id: str
    provider: str
    token: str
    instance_url: str | None = None
    uid: str | None = None

    def __repr__(self) -> str:
        return f"CRMCredential(id={self.id!r}, provider={self.provider!r})"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CRMCredential:
        """Create CRMCredential from database record."""
        return cls(
            id=int(data["id"]),
            user_id=str(data["user_id"]),
            provider=data["provider"],
            token=data.get("token") or "",
            instance_url=data.get("instance_url"),
            uid=data.get("uid"),
        )


class CredentialRepository:
    """Read access to ``user_credentials``."""

    def __init__(self, db_client: Client) -> None:
        self.db = db_client

    async def get_latest(self, user_id: str, provider: str) -> CRMCredential | None:
        """Most recently created credential for (user, provider), or None."""
        result = (
            self.db.table("user_credentials")
            .select("*")
            .eq("user_id", user_id)
            .eq("provider", provider)
            .order("inserted_at", desc=True)
            .order("id", desc=True)
            .limit(1)
            .execute()
        )
        if not result.data:
            return None
        return CRMCredential.from_dict(result.data[0])
