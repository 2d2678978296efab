"""Event delivery to players.

The submission flow only sees the ``Notifier`` protocol; which backend runs
is picked from ``NOTIFIER_BACKEND``. Delivery is best-effort: callers log and
drop failures rather than failing the request.
"""

import json
import logging
from typing import Any, Protocol

from edugame.config import settings
from edugame.services.redis_client import get_redis

logger = logging.getLogger(__name__)

QUIZ_COMPLETED = "quiz-completed"
ACHIEVEMENT_UNLOCKED = "achievement-unlocked"


class Notifier(Protocol):
    def notify(self, event: str, payload: dict[str, Any]) -> None: ...


class LoggingNotifier:
    """Writes events to the log only."""

    def notify(self, event: str, payload: dict[str, Any]) -> None:
        logger.info("Event %s for user %s", event, payload.get("user_id"))


class RedisNotifier:
    """Publishes JSON events on a per-user pub/sub channel."""

    def __init__(self, channel_prefix: str | None = None):
        self.channel_prefix = channel_prefix or settings.NOTIFY_CHANNEL_PREFIX

    def channel_for(self, user_id: Any) -> str:
        return f"{self.channel_prefix}:{user_id}"

    def notify(self, event: str, payload: dict[str, Any]) -> None:
        message = json.dumps({"event": event, "data": payload}, default=str)
        receivers = get_redis().publish(self.channel_for(payload["user_id"]), message)
        logger.debug("Published %s to %d subscriber(s)", event, receivers)


class RecordingNotifier:
    """Keeps every event in memory."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def notify(self, event: str, payload: dict[str, Any]) -> None:
        self.events.append((event, payload))

    def of(self, event: str) -> list[dict[str, Any]]:
        return [payload for name, payload in self.events if name == event]


def build_notifier(backend: str | None = None) -> Notifier:
    backend = (backend or settings.NOTIFIER_BACKEND).lower()
    if backend == "redis":
        return RedisNotifier()
    if backend == "log":
        return LoggingNotifier()
    raise ValueError(f"Unknown notifier backend: {backend}")
