"""Chat turn orchestration.

One turn: persist the user message, resolve the mentioned contact and
gather context, build the prompt, call the model, persist the reply, and
schedule a title for new threads.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from supabase import Client

from scribe_chat.core.llm import ChatModel, LLMClient
from scribe_chat.models.chat import ChatMessage, ChatThread
from scribe_chat.models.context import Citation
from scribe_chat.services.chat_store import ChatStore
from scribe_chat.services.citations import parse_citations
from scribe_chat.services.contact_resolver import ContactResolver
from scribe_chat.services.contacts import ContactRepository
from scribe_chat.services.context_assembler import ContextAssembler
from scribe_chat.services.crm_snapshot import build_crm_snapshot_gatherer
from scribe_chat.services.meeting_evidence import MeetingEvidenceFinder
from scribe_chat.services.prompt_builder import build_response_metadata, build_turns
from scribe_chat.services.thread_titles import (
    ThreadTitleGenerator,
    TitleScheduler,
    title_scheduler,
)

logger = logging.getLogger(__name__)


class TurnStage(str, enum.Enum):
    """Progress of a chat turn."""

    RECEIVED = "received"
    USER_PERSISTED = "user_persisted"
    RESOLVED = "resolved"
    CONTEXT_GATHERED = "context_gathered"
    PROMPT_BUILT = "prompt_built"
    MODEL_INVOKED = "model_invoked"
    ASSISTANT_PERSISTED = "assistant_persisted"
    TITLE_SCHEDULED = "title_scheduled"
    DONE = "done"


@dataclass
class ChatTurnResult:
    """What a completed turn hands back to the caller."""

    content: str
    metadata: dict[str, Any]
    citations: list[Citation] = field(default_factory=list)
    user_message: ChatMessage | None = None
    assistant_message: ChatMessage | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "metadata": self.metadata,
            "citations": [c.to_dict() for c in self.citations],
            "user_message": self.user_message.to_dict() if self.user_message else None,
            "assistant_message": (
                self.assistant_message.to_dict() if self.assistant_message else None
            ),
        }


class ChatResponder:
    """Runs chat turns.

    Only model failures (``ConfigError``, ``TransportError``,
    ``ResponseParseError``) abort a turn; the user's message stays saved.
    """

    def __init__(
        self,
        store: ChatStore,
        assembler: ContextAssembler,
        model: ChatModel,
        titles: ThreadTitleGenerator | None = None,
        scheduler: TitleScheduler | None = None,
    ) -> None:
        self.store = store
        self.assembler = assembler
        self.model = model
        self.titles = titles or ThreadTitleGenerator(store, model)
        self.scheduler = scheduler or title_scheduler

    def _stage(self, thread: ChatThread, stage: TurnStage) -> None:
        logger.debug("Chat turn %s", stage.value, extra={"thread_id": thread.id})

    async def respond(
        self,
        thread: ChatThread,
        user_id: str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> ChatTurnResult:
        """Answer one user message in a thread.

        Args:
            thread: The thread, already checked to belong to ``user_id``.
            user_id: The acting user's ID.
            content: The user's question.
            metadata: The message's metadata bag (mentions).

        Returns:
            The reply with its meeting refs and parsed citations.

        Raises:
            ScribeChatError: If the model call fails.
        """
        metadata = metadata or {}
        self._stage(thread, TurnStage.RECEIVED)

        user_message = await self.store.create_user_message(thread, content, metadata)
        self._stage(thread, TurnStage.USER_PERSISTED)

        resolution = await self.assembler.resolve(user_id, metadata)
        self._stage(thread, TurnStage.RESOLVED)
        bundle = await self.assembler.gather(user_id, resolution)
        self._stage(thread, TurnStage.CONTEXT_GATHERED)

        history = await self.store.list_messages(thread.id)
        turns = build_turns(bundle, history, content)
        response_metadata = build_response_metadata(bundle)
        self._stage(thread, TurnStage.PROMPT_BUILT)

        try:
            reply = await self.model.complete(turns)
        except Exception as e:
            logger.warning(
                "Chat turn aborted by model failure",
                extra={
                    "thread_id": thread.id,
                    "error_category": getattr(e, "category", type(e).__name__),
                },
            )
            raise
        self._stage(thread, TurnStage.MODEL_INVOKED)

        assistant_message = await self.store.create_assistant_message(
            thread, reply, response_metadata
        )
        self._stage(thread, TurnStage.ASSISTANT_PERSISTED)

        if await self._maybe_schedule_title(thread, user_message):
            self._stage(thread, TurnStage.TITLE_SCHEDULED)
        self._stage(thread, TurnStage.DONE)

        return ChatTurnResult(
            content=reply,
            metadata=response_metadata,
            citations=parse_citations(reply, response_metadata["meeting_refs"]),
            user_message=user_message,
            assistant_message=assistant_message,
        )

    async def _maybe_schedule_title(self, thread: ChatThread, user_message: ChatMessage) -> bool:
        if thread.title is not None:
            return False
        try:
            first = await self.store.get_first_user_message(thread.id)
        except Exception:
            logger.warning(
                "Could not check for first message, skipping title",
                extra={"thread_id": thread.id},
                exc_info=True,
            )
            return False
        if first is None or first.id != user_message.id:
            return False
        task = self.scheduler.schedule(thread.id, lambda: self.titles.run(thread.id))
        return task is not None


def build_chat_responder(db_client: Client) -> ChatResponder:
    """Wire a responder with the default Supabase, CRM and Claude collaborators."""
    store = ChatStore(db_client)
    contacts = ContactRepository(db_client)
    assembler = ContextAssembler(
        resolver=ContactResolver(contacts),
        evidence=MeetingEvidenceFinder(db_client, contacts),
        crm=build_crm_snapshot_gatherer(db_client),
    )
    return ChatResponder(store, assembler, LLMClient())
