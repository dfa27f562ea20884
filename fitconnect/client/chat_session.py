"""
Chat screen session.

A ChatSession is what a mounted chat view holds: its own InboxView, a
conversation-list poller and a thread poller with independent timers. It
lives from mount() to unmount(); nothing is shared between sessions.
"""

import uuid
from typing import Any

from ..error_types import ErrorMessages
from ..exceptions import FitConnectError, ValidationError
from ..structured_logging.enhanced_logging_config import get_logger
from .api_client import MessageApiClient
from .inbox_poller import DEFAULT_POLL_INTERVAL, ConversationListPoller, ThreadPoller
from .view_state import InboxView, StateListener

logger = get_logger(__name__)


class ChatSession:
    """One chat screen: conversation list, open thread and composer."""

    def __init__(
        self,
        api: MessageApiClient,
        user_id: str,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        listener: StateListener | None = None,
    ) -> None:
        self.api = api
        self.view = InboxView(user_id, listener)
        self.conversation_poller = ConversationListPoller(self.view, api, poll_interval)
        self.thread_poller = ThreadPoller(self.view, api, poll_interval)
        self._mounted = False

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def user_id(self) -> str:
        return self.view.user_id

    def mount(self, other_user_id: str | None = None) -> None:
        """Start both pollers; each fetches immediately."""
        if self._mounted:
            return
        self._mounted = True
        if other_user_id:
            self.thread_poller.select_thread(other_user_id)
        self.conversation_poller.start()
        self.thread_poller.start()
        logger.debug("Chat session mounted", user_id=self.user_id, other_user_id=other_user_id)

    def unmount(self) -> None:
        """Stop both pollers; responses still in flight never reach the view."""
        if not self._mounted:
            return
        self._mounted = False
        self.conversation_poller.stop()
        self.thread_poller.stop()
        logger.debug("Chat session unmounted", user_id=self.user_id)

    async def wait_idle(self) -> None:
        """Wait for fetches and mark-read calls still in flight."""
        await self.conversation_poller.wait_idle()
        await self.thread_poller.wait_idle()

    def select_conversation(self, other_user_id: str) -> None:
        self.view.set_error(None)
        self.thread_poller.select_thread(other_user_id)
        # select_thread restarts the timer, which fetches straight away

    def request_refresh(self) -> None:
        """Poll both lists now, outside the regular ticks."""
        self.conversation_poller.poll_now()
        self.thread_poller.poll_now()

    async def send(self, text: str) -> bool:
        """
        Send text to the open conversation.

        The composer is cleared and a provisional entry shown before the
        request is made. On failure the text is put back in the composer and
        the error shown inline. Either way the next thread snapshot decides
        what the conversation looks like.

        Returns:
            True when the server stored the message
        """
        recipient_id = self.view.active_conversation_id
        if not recipient_id:
            self.view.set_error(ErrorMessages.RECIPIENT_REQUIRED)
            return False
        try:
            body = MessageApiClient.validate_message_body(text)
        except ValidationError as e:
            self.view.set_error(e.user_friendly)
            return False

        provisional_id = f"pending-{uuid.uuid4().hex}"
        self.view.set_draft("")
        self.view.apply_optimistic_message(recipient_id, body, provisional_id)
        try:
            await self.api.send_message(recipient_id, body)
        except FitConnectError as e:
            self.view.discard_optimistic_message(provisional_id)
            self.view.set_draft(text)
            self.view.set_error(e.user_friendly)
            logger.warning("Send failed", recipient_id=recipient_id, error=e.message)
            return False

        if self.view.error:
            self.view.set_error(None)
        self.request_refresh()
        return True

    async def contacts(self) -> dict[str, Any]:
        """The assigned trainer (client) or the assigned clients (trainer)."""
        try:
            return await self.api.get_contact()
        except FitConnectError as e:
            self.view.set_error(e.user_friendly)
            return {}
