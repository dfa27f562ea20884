"""
Missed-workout alert sender for trainers.

send_alert never raises for request failures. The outcome comes back as an
AlertResult so the alerts form can show the error text next to the button.
There is no idempotency key: pressing send twice stores two alerts.
"""

from dataclasses import dataclass, field
from typing import Any

from ..error_types import ErrorMessages
from ..exceptions import AuthorizationError, FitConnectError
from ..structured_logging.enhanced_logging_config import get_logger
from .api_client import MessageApiClient
from .session import SessionIdentity

logger = get_logger(__name__)


@dataclass
class AlertResult:
    """Outcome of one send_alert call."""

    ok: bool
    message: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    error_type: str | None = None

    @property
    def unauthorized(self) -> bool:
        return self.error_type == AuthorizationError.__name__


class AlertProducer:
    """Sends "workout missed" alerts on behalf of a signed-in trainer."""

    def __init__(self, api: MessageApiClient, identity: SessionIdentity | None = None) -> None:
        self.api = api
        self.identity = identity

    async def send_alert(
        self,
        recipient_id: str,
        workout_log_ref: str | None = None,
        message: str | None = None,
        priority: str = "high",
    ) -> AlertResult:
        if self.identity is not None and not self.identity.is_trainer:
            logger.info("Alert refused for non-trainer session", user_id=self.identity.user_id)
            return AlertResult(
                ok=False,
                error=ErrorMessages.APPROVED_TRAINERS_ONLY,
                error_type=AuthorizationError.__name__,
            )

        try:
            created = await self.api.send_workout_missed_alert(
                recipient_id, workout_log_id=workout_log_ref, message=message, priority=priority
            )
        except FitConnectError as e:
            logger.warning(
                "Workout missed alert failed",
                client_id=recipient_id,
                error_type=type(e).__name__,
                error=e.message,
            )
            return AlertResult(
                ok=False,
                error=e.user_friendly,
                error_type=type(e).__name__,
            )

        logger.info("Workout missed alert sent", client_id=recipient_id, message_id=created.get("id"))
        return AlertResult(ok=True, message=created)
