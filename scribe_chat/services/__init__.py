"""Services package."""

from scribe_chat.services.chat_responder import (
    ChatResponder,
    ChatTurnResult,
    TurnStage,
    build_chat_responder,
)
from scribe_chat.services.chat_store import ChatStore
from scribe_chat.services.contact_resolver import ContactResolver, Resolution, ResolutionBranch
from scribe_chat.services.contact_search import (
    ContactSearchResult,
    HybridContactSearch,
    build_contact_search,
)
from scribe_chat.services.contacts import ContactRepository
from scribe_chat.services.context_assembler import ContextAssembler
from scribe_chat.services.crm_snapshot import CRMSnapshotGatherer, build_crm_snapshot_gatherer
from scribe_chat.services.meeting_evidence import MeetingEvidenceFinder
from scribe_chat.services.thread_titles import ThreadTitleGenerator, TitleScheduler

__all__ = [
    "ChatResponder",
    "ChatStore",
    "ChatTurnResult",
    "ContactRepository",
    "ContactResolver",
    "ContactSearchResult",
    "ContextAssembler",
    "CRMSnapshotGatherer",
    "HybridContactSearch",
    "MeetingEvidenceFinder",
    "Resolution",
    "ResolutionBranch",
    "ThreadTitleGenerator",
    "TitleScheduler",
    "TurnStage",
    "build_chat_responder",
    "build_contact_search",
    "build_crm_snapshot_gatherer",
]
