"""Background thread-title generation.

Titles are generated after the first exchange in a thread, off the request
path. Jobs are ``asyncio.Task``s keyed by thread id and can be cancelled;
the title write only lands if the thread still has no title.

Known race: two first-turns on one thread can both pass the "first user
message" check and both schedule a job. The second job finds a running job
and is ignored; if the first already finished, the set-if-null write keeps
whichever title landed first.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from scribe_chat.core.config import settings
from scribe_chat.core.llm import ChatModel
from scribe_chat.models.chat import MessageRole
from scribe_chat.services.chat_store import ChatStore

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New Chat"
ANSWER_SNIPPET_LENGTH = 500

TITLE_PROMPT = """Generate a short, concise title (max 6 words) for a chat conversation.
The title should capture the main topic of the discussion.

User's question: {question}
{answer}

Respond with ONLY the title, no quotes, no explanation.
"""


def truncate_for_title(content: str, length: int | None = None) -> str:
    """First ``length`` characters, trimmed, with ``...`` when cut."""
    limit = length or settings.TITLE_FALLBACK_LENGTH
    title = content[:limit].strip()
    return f"{title}..." if len(content) > limit else title


class ThreadTitleGenerator:
    """Produces and stores a thread's title."""

    def __init__(self, store: ChatStore, model: ChatModel) -> None:
        self.store = store
        self.model = model

    async def generate(self, thread_id: int) -> str:
        """Generate a title from the thread's first question and answer.

        Never raises: any model problem falls back to the truncated question.
        """
        messages = await self.store.list_messages(thread_id)
        question = next((m for m in messages if m.role is MessageRole.USER), None)
        if question is None:
            return DEFAULT_TITLE
        answer = next((m for m in messages if m.role is MessageRole.ASSISTANT), None)

        fallback = truncate_for_title(question.content)
        if not self.model.configured:
            return fallback

        prompt = TITLE_PROMPT.format(
            question=question.content,
            answer=(
                f"Assistant's response: {answer.content[:ANSWER_SNIPPET_LENGTH]}" if answer else ""
            ),
        )
        try:
            title = await self.model.complete(
                [{"role": "user", "content": prompt}],
                max_tokens=settings.TITLE_MAX_TOKENS,
            )
        except Exception:
            logger.warning(
                "Title generation failed, using fallback",
                extra={"thread_id": thread_id},
                exc_info=True,
            )
            return fallback
        return title.strip() or fallback

    async def run(self, thread_id: int) -> None:
        title = await self.generate(thread_id)
        await self.store.set_title_if_null(thread_id, title)


class TitleScheduler:
    """Cancellable background jobs, at most one per thread."""

    def __init__(self) -> None:
        self._active_tasks: dict[int, asyncio.Task[None]] = {}

    def schedule(
        self, thread_id: int, job: Callable[[], Coroutine[Any, Any, None]]
    ) -> asyncio.Task[None] | None:
        """Start ``job()`` in the background unless one is already running.

        Returns:
            The new task, or None if a job for this thread is running.
        """
        if self.is_running(thread_id):
            logger.debug("Title job already running", extra={"thread_id": thread_id})
            return None

        task = asyncio.create_task(self._run(thread_id, job))
        self._active_tasks[thread_id] = task

        # Clean up reference when done, unless a newer task replaced it
        task.add_done_callback(
            lambda t: self._active_tasks.pop(thread_id, None)
            if self._active_tasks.get(thread_id) is t
            else None
        )
        logger.info("Title job scheduled", extra={"thread_id": thread_id})
        return task

    async def _run(self, thread_id: int, job: Callable[[], Coroutine[Any, Any, None]]) -> None:
        try:
            await job()
        except asyncio.CancelledError:
            logger.info("Title job cancelled", extra={"thread_id": thread_id})
            raise
        except Exception:
            logger.exception("Title job failed", extra={"thread_id": thread_id})

    def cancel(self, thread_id: int) -> bool:
        """Cancel a thread's running job. Returns True if one was cancelled."""
        task = self._active_tasks.pop(thread_id, None)
        if task and not task.done():
            task.cancel()
            return True
        return False

    def cancel_all(self) -> int:
        """Cancel every running job. Returns how many were cancelled."""
        return sum(self.cancel(thread_id) for thread_id in list(self._active_tasks))

    def is_running(self, thread_id: int) -> bool:
        task = self._active_tasks.get(thread_id)
        return task is not None and not task.done()

    def get_task(self, thread_id: int) -> asyncio.Task[None] | None:
        return self._active_tasks.get(thread_id)


# Process-wide scheduler shared by all responders
title_scheduler = TitleScheduler()
