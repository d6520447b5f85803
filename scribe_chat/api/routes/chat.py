"""Chat API routes for contact-grounded meeting conversations."""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from scribe_chat.api.deps import ChatResponderDep, ChatStoreDep, CurrentUser
from scribe_chat.core.exceptions import NotFoundError, ScribeChatError, sanitize_error

logger = logging.getLogger(__name__)


router = APIRouter(prefix="/chat", tags=["chat"])


class CreateThreadRequest(BaseModel):
    """Request body for creating a thread."""

    title: str | None = Field(None, max_length=200, description="Optional initial title")


class ThreadResponse(BaseModel):
    """A chat thread."""

    id: int
    title: str | None
    created_at: str | None
    updated_at: str | None


class ThreadListResponse(BaseModel):
    """Response for listing threads."""

    threads: list[ThreadResponse]


class MessageResponse(BaseModel):
    """A single message in a thread."""

    id: int
    thread_id: int
    role: str
    content: str
    metadata: dict[str, Any] = {}
    inserted_at: str | None = None


class SendMessageRequest(BaseModel):
    """Request body for sending a message to a thread."""

    content: str = Field(..., min_length=1, description="User's question")
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Message metadata, e.g. contact mentions"
    )


class CitationResponse(BaseModel):
    """A meeting citation found in the assistant's reply."""

    label: str
    meeting_id: int
    title: str | None = None
    date: str | None = None
    verified: bool


class ChatTurnResponse(BaseModel):
    """The assistant's reply to one message."""

    content: str
    metadata: dict[str, Any]
    citations: list[CitationResponse] = []
    user_message: MessageResponse | None = None
    assistant_message: MessageResponse | None = None


def _thread_response(thread: Any) -> ThreadResponse:
    data = thread.to_dict()
    return ThreadResponse(
        id=data["id"],
        title=data["title"],
        created_at=data["created_at"],
        updated_at=data["updated_at"],
    )


@router.post("/threads", response_model=ThreadResponse, status_code=201)
async def create_thread(
    current_user: CurrentUser,
    store: ChatStoreDep,
    request: CreateThreadRequest,
) -> ThreadResponse:
    """Create a new chat thread for the current user."""
    try:
        thread = await store.create_thread(user_id=current_user.id, title=request.title)
    except ScribeChatError as e:
        logger.exception("Failed to create chat thread")
        raise HTTPException(status_code=e.status_code, detail=sanitize_error(e)) from e
    return _thread_response(thread)


@router.get("/threads", response_model=ThreadListResponse)
async def list_threads(
    current_user: CurrentUser,
    store: ChatStoreDep,
    limit: int = 50,
    offset: int = 0,
) -> ThreadListResponse:
    """List the current user's threads, most recently active first.

    Args:
        current_user: The authenticated user.
        store: Chat persistence.
        limit: Maximum number of threads to return.
        offset: Number of threads to skip.

    Returns:
        The user's threads.
    """
    threads = await store.list_threads(user_id=current_user.id, limit=limit, offset=offset)
    return ThreadListResponse(threads=[_thread_response(t) for t in threads])


@router.get("/threads/{thread_id}/messages", response_model=list[MessageResponse])
async def get_thread_messages(
    current_user: CurrentUser,
    store: ChatStoreDep,
    thread_id: int,
) -> list[MessageResponse]:
    """Get the messages of a thread in creation order.

    Raises:
        HTTPException: If the thread is not found.
    """
    try:
        thread = await store.get_thread_for_user(user_id=current_user.id, thread_id=thread_id)
    except NotFoundError as e:
        logger.warning("Thread not found for messages", extra={"thread_id": thread_id})
        raise HTTPException(status_code=404, detail=sanitize_error(e)) from e

    messages = await store.list_messages(thread.id)
    return [MessageResponse(**m.to_dict()) for m in messages]


@router.post("/threads/{thread_id}/messages", response_model=ChatTurnResponse)
async def send_message(
    current_user: CurrentUser,
    store: ChatStoreDep,
    responder: ChatResponderDep,
    thread_id: int,
    request: SendMessageRequest,
) -> ChatTurnResponse:
    """Send a message to a thread and receive the assistant's reply.

    Args:
        current_user: The authenticated user.
        store: Chat persistence.
        responder: Runs the chat turn.
        thread_id: The thread ID.
        request: The message content and its mentions.

    Returns:
        The reply, the meetings it may cite and the citations it made.

    Raises:
        HTTPException: If the thread is not found or the model call fails.
    """
    try:
        thread = await store.get_thread_for_user(user_id=current_user.id, thread_id=thread_id)
    except NotFoundError as e:
        logger.warning("Thread not found for message", extra={"thread_id": thread_id})
        raise HTTPException(status_code=404, detail=sanitize_error(e)) from e

    try:
        result = await responder.respond(
            thread=thread,
            user_id=current_user.id,
            content=request.content,
            metadata=request.metadata,
        )
    except ScribeChatError as e:
        logger.warning(
            "Chat turn failed",
            extra={
                "user_id": current_user.id,
                "thread_id": thread_id,
                "error_category": e.category,
            },
        )
        raise HTTPException(status_code=e.status_code, detail=sanitize_error(e)) from e

    logger.info(
        "Chat message processed",
        extra={
            "user_id": current_user.id,
            "thread_id": thread_id,
            "citation_count": len(result.citations),
        },
    )
    return ChatTurnResponse(**result.to_dict())
