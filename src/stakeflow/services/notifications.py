"""Notification sinks.

A sink is how the core talks to the user. Notifications are fire and
forget: the core never reads anything back.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

import structlog

log = structlog.get_logger(__name__)


class NotificationKind(str, Enum):
    """Severity of a notification."""

    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """One notification as delivered to a sink."""

    message: str
    kind: NotificationKind
    description: str | None = None
    created_at: datetime | None = None


class LoggingNotificationSink:
    """Sink that emits every notification as a structured log event."""

    def notify(
        self,
        message: str,
        kind: NotificationKind,
        description: str | None = None,
    ) -> None:
        level = {
            NotificationKind.ERROR: "error",
            NotificationKind.WARNING: "warning",
        }.get(NotificationKind(kind), "info")
        getattr(log, level)(
            "notification",
            kind=NotificationKind(kind).value,
            message=message,
            description=description,
        )


class RecordingNotificationSink:
    """Sink that keeps notifications in delivery order.

    UI layers drain it with ``drain()``; it can forward to another sink.
    """

    def __init__(self, forward_to: LoggingNotificationSink | None = None) -> None:
        self._notifications: list[Notification] = []
        self._forward_to = forward_to

    def notify(
        self,
        message: str,
        kind: NotificationKind,
        description: str | None = None,
    ) -> None:
        self._notifications.append(
            Notification(
                message=message,
                kind=NotificationKind(kind),
                description=description,
                created_at=datetime.now(UTC),
            )
        )
        if self._forward_to is not None:
            self._forward_to.notify(message, kind, description)

    @property
    def notifications(self) -> list[Notification]:
        return list(self._notifications)

    def of_kind(self, kind: NotificationKind) -> list[Notification]:
        return [n for n in self._notifications if n.kind == kind]

    def drain(self) -> list[Notification]:
        """Return and forget every recorded notification."""
        drained, self._notifications = self._notifications, []
        return drained
