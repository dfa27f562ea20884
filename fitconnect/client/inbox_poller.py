"""
Inbox pollers.

The REST API is the source of truth for conversations, threads and unread
counts; push events only make a poll happen sooner. A poller fetches on
start, then on every tick of a fixed interval, and hands each response to
the view as a full snapshot.

Ticks do not wait for earlier fetches: overlapping fetches are allowed and
every response that completes reconciles, so the last one to resolve wins.

Each start() opens a new generation. stop() cancels the timer and closes
the generation, and any response belonging to a closed generation is
dropped without touching the view.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any, Generic, TypeVar

from ..exceptions import AuthorizationError, FitConnectError
from ..structured_logging.enhanced_logging_config import get_logger
from .api_client import MessageApiClient
from .view_state import InboxView

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_POLL_INTERVAL = 3.0


class PollLoop(Generic[T]):
    """Timer-driven fetch and full-replace reconcile loop for one view."""

    name = "poll"

    def __init__(self, view: InboxView, api: MessageApiClient, interval: float = DEFAULT_POLL_INTERVAL) -> None:
        if interval <= 0:
            raise ValueError("Poll interval must be greater than 0")
        self.view = view
        self.api = api
        self.interval = interval
        self._generation = 0
        self._running = False
        self._timer_task: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()
        self._in_flight = 0
        self.stats = {"polls": 0, "reconciled": 0, "late_responses": 0, "errors": 0}

    @property
    def running(self) -> bool:
        return self._running

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def state(self) -> str:
        if not self._running:
            return "stopped"
        return "fetching" if self._in_flight else "idle"

    def is_live(self, generation: int) -> bool:
        return self._running and generation == self._generation

    async def fetch(self) -> T:
        raise NotImplementedError

    def reconcile(self, result: T) -> None:
        raise NotImplementedError

    def start(self) -> None:
        """Fetch immediately and then on every interval tick until stopped."""
        if self._running:
            return
        self._running = True
        self._generation += 1
        self._timer_task = asyncio.create_task(self._timer(self._generation), name=f"fitconnect-{self.name}-timer")
        logger.debug("Poller started", poller=self.name, generation=self._generation, interval=self.interval)

    def stop(self) -> None:
        """Cancel the timer; responses still in flight will be ignored."""
        if not self._running:
            return
        self._running = False
        self._generation += 1
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None
        logger.debug("Poller stopped", poller=self.name, in_flight=self._in_flight)

    def restart_generation(self) -> None:
        """Drop responses of fetches issued so far without stopping the timer."""
        self._generation += 1
        if self._running and self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = asyncio.create_task(self._timer(self._generation), name=f"fitconnect-{self.name}-timer")

    def poll_now(self) -> None:
        """Schedule an immediate fetch outside the timer."""
        if self._running:
            self._spawn(self._poll(self._generation))

    async def _timer(self, generation: int) -> None:
        while self.is_live(generation):
            self._spawn(self._poll(generation))
            await asyncio.sleep(self.interval)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _poll(self, generation: int) -> None:
        self.stats["polls"] += 1
        self._in_flight += 1
        try:
            result = await self.fetch()
        except FitConnectError as e:
            self.stats["errors"] += 1
            if self.is_live(generation):
                self.handle_error(e)
            return
        finally:
            self._in_flight -= 1

        if not self.is_live(generation):
            self.stats["late_responses"] += 1
            logger.debug("Ignoring poll response for a closed generation", poller=self.name, generation=generation)
            return
        self.reconcile(result)
        self.stats["reconciled"] += 1

    def handle_error(self, error: FitConnectError) -> None:
        """Failed polls leave the view stale until the next tick; credential problems are shown."""
        logger.warning("Poll failed", poller=self.name, error=error.message)
        if isinstance(error, AuthorizationError):
            self.view.set_error(error.user_friendly)

    async def wait_idle(self) -> None:
        """Wait for every fetch and side effect issued so far (used by tests and shutdown)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class ConversationListPoller(PollLoop[tuple[list[dict[str, Any]], int]]):
    """Polls the conversation list and the total unread count."""

    name = "conversations"

    async def fetch(self) -> tuple[list[dict[str, Any]], int]:
        conversations, unread = await asyncio.gather(self.api.get_conversations(), self.api.get_unread_count())
        return conversations, unread

    def reconcile(self, result: tuple[list[dict[str, Any]], int]) -> None:
        conversations, unread = result
        self.view.set_conversations(conversations)
        self.view.set_unread_count(unread)


class ThreadPoller(PollLoop[dict[str, Any]]):
    """
    Polls the messages of the selected conversation.

    After each reconcile, every message addressed to the current user that
    is still unread gets one fire-and-forget mark-read call. Failures are
    logged and not retried; the next snapshot shows the real state.
    """

    name = "thread"

    def __init__(
        self,
        view: InboxView,
        api: MessageApiClient,
        interval: float = DEFAULT_POLL_INTERVAL,
        other_user_id: str | None = None,
        page_limit: int = 50,
    ) -> None:
        super().__init__(view, api, interval)
        self.other_user_id = other_user_id
        self.page_limit = page_limit
        self._marking: set[str] = set()
        self.stats.update({"mark_read_sent": 0, "mark_read_failed": 0})

    def select_thread(self, other_user_id: str | None) -> None:
        """Switch to another conversation; responses for the previous one are dropped."""
        if other_user_id == self.other_user_id:
            return
        self.other_user_id = other_user_id
        self.view.set_active_conversation(other_user_id)
        self.restart_generation()

    async def fetch(self) -> dict[str, Any]:
        if not self.other_user_id:
            return {"messages": [], "pagination": {}, "other_user_id": None}
        other_user_id = self.other_user_id
        result = await self.api.get_conversation(other_user_id, page=1, limit=self.page_limit)
        return {**result, "other_user_id": other_user_id}

    def reconcile(self, result: dict[str, Any]) -> None:
        if result.get("other_user_id") != self.other_user_id:
            return
        messages = result.get("messages", [])
        self.view.set_messages(messages, result.get("pagination"))
        if self.other_user_id:
            self._mark_unread(messages)

    def _mark_unread(self, messages: list[dict[str, Any]]) -> None:
        for message in messages:
            message_id = message.get("id")
            if (
                message_id
                and message.get("recipientId") == self.view.user_id
                and not message.get("isRead")
                and message_id not in self._marking
            ):
                self._marking.add(message_id)
                self._spawn(self._mark_read(message_id))

    async def _mark_read(self, message_id: str) -> None:
        self.stats["mark_read_sent"] += 1
        try:
            await self.api.mark_as_read(message_id)
        except FitConnectError as e:
            self.stats["mark_read_failed"] += 1
            logger.warning("Mark as read failed", message_id=message_id, error=e.message)
        finally:
            self._marking.discard(message_id)
