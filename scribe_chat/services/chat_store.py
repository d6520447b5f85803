"""Service for chat threads and their messages.

Provides:
- Create and list a user's threads
- Append user and assistant messages (touching the thread's updated_at)
- List a thread's messages in creation order
- Set a thread title once
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from supabase import Client

from scribe_chat.core.exceptions import DatabaseError, NotFoundError
from scribe_chat.models.chat import ChatMessage, ChatThread, MessageRole

logger = logging.getLogger(__name__)


class ChatStore:
    """Service for chat thread and message persistence."""

    def __init__(self, db_client: Client) -> None:
        """Initialize the chat store.

        Args:
            db_client: Supabase client for database operations.
        """
        self.db = db_client

    async def create_thread(self, user_id: str, title: str | None = None) -> ChatThread:
        """Create a thread owned by a user."""
        now = datetime.now(UTC).isoformat()
        result = (
            self.db.table("chat_threads")
            .insert({"user_id": user_id, "title": title, "created_at": now, "updated_at": now})
            .execute()
        )
        if not result.data:
            raise DatabaseError("Failed to create chat thread")
        thread = ChatThread.from_dict(result.data[0])
        logger.info("Chat thread created", extra={"user_id": user_id, "thread_id": thread.id})
        return thread

    async def get_thread_for_user(self, user_id: str, thread_id: int) -> ChatThread:
        """Get a thread, checking ownership.

        Raises:
            NotFoundError: If the thread does not exist or belongs to another user.
        """
        result = (
            self.db.table("chat_threads")
            .select("*")
            .eq("user_id", user_id)
            .eq("id", thread_id)
            .limit(1)
            .execute()
        )
        if not result.data:
            raise NotFoundError(resource="Chat thread", resource_id=thread_id)
        return ChatThread.from_dict(result.data[0])

    async def list_threads(self, user_id: str, limit: int = 50, offset: int = 0) -> list[ChatThread]:
        """List a user's threads, most recently active first."""
        result = (
            self.db.table("chat_threads")
            .select("*")
            .eq("user_id", user_id)
            .order("updated_at", desc=True)
            .limit(limit)
            .offset(offset)
            .execute()
        )
        return [ChatThread.from_dict(row) for row in result.data or []]

    async def _create_message(
        self,
        thread: ChatThread,
        role: MessageRole,
        content: str,
        metadata: dict[str, Any] | None,
    ) -> ChatMessage:
        now = datetime.now(UTC).isoformat()
        result = (
            self.db.table("chat_messages")
            .insert(
                {
                    "thread_id": thread.id,
                    "role": role.value,
                    "content": content,
                    "metadata": metadata or {},
                    "inserted_at": now,
                }
            )
            .execute()
        )
        if not result.data:
            raise DatabaseError("Failed to save chat message")

        # Touch last-activity on every new message
        self.db.table("chat_threads").update({"updated_at": now}).eq("id", thread.id).execute()
        return ChatMessage.from_dict(result.data[0])

    async def create_user_message(
        self, thread: ChatThread, content: str, metadata: dict[str, Any] | None = None
    ) -> ChatMessage:
        return await self._create_message(thread, MessageRole.USER, content, metadata)

    async def create_assistant_message(
        self, thread: ChatThread, content: str, metadata: dict[str, Any] | None = None
    ) -> ChatMessage:
        return await self._create_message(thread, MessageRole.ASSISTANT, content, metadata)

    async def list_messages(self, thread_id: int) -> list[ChatMessage]:
        """All messages of a thread in creation order."""
        result = (
            self.db.table("chat_messages")
            .select("*")
            .eq("thread_id", thread_id)
            .order("inserted_at")
            .order("id")
            .execute()
        )
        return [ChatMessage.from_dict(row) for row in result.data or []]

    async def get_first_user_message(self, thread_id: int) -> ChatMessage | None:
        result = (
            self.db.table("chat_messages")
            .select("*")
            .eq("thread_id", thread_id)
            .eq("role", MessageRole.USER.value)
            .order("inserted_at")
            .order("id")
            .limit(1)
            .execute()
        )
        if not result.data:
            return None
        return ChatMessage.from_dict(result.data[0])

    async def set_title_if_null(self, thread_id: int, title: str) -> bool:
        """Set a thread's title unless one is already set.

        The ``title is null`` filter makes the write a compare-and-set, so
        concurrent title jobs for one thread cannot overwrite each other.

        Returns:
            True if this call set the title.
        """
        result = (
            self.db.table("chat_threads")
            .update({"title": title})
            .eq("id", thread_id)
            .is_("title", "null")
            .execute()
        )
        updated = bool(result.data)
        logger.info(
            "Thread title %s",
            "set" if updated else "already set",
            extra={"thread_id": thread_id},
        )
        return updated
