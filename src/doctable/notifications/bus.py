"""Single-slot, auto-expiring notification bus."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Literal, Optional, get_args

from doctable.config.models import NotificationSettings
from doctable.scheduling import ScheduledCall, Scheduler

LOGGER = logging.getLogger(__name__)

Severity = Literal["info", "success", "warning", "error"]
SEVERITIES: tuple[str, ...] = get_args(Severity)


@dataclass(frozen=True, slots=True)
class Notification:
    """A message shown to the user."""

    message: str
    severity: Severity
    sequence: int


@dataclass(frozen=True, slots=True)
class NotificationView:
    """Notification contract consumed by the view layer."""

    open: bool
    message: str
    severity: Severity
    on_close: Callable[[], None]


class NotificationBus:
    """Hold at most one active notification.

    Publishing replaces the active notification and restarts its expiry
    timer. Expiry callbacks are tied to the notification that armed them, so
    a stale timer never clears a newer message.
    """

    def __init__(self, scheduler: Scheduler, settings: NotificationSettings | None = None) -> None:
        self._scheduler = scheduler
        self._settings = settings or NotificationSettings()
        self._current: Optional[Notification] = None
        self._last: Optional[Notification] = None
        self._expiry: Optional[ScheduledCall] = None
        self._sequence = 0
        self._listeners: list[Callable[[Optional[Notification]], None]] = []

    @property
    def current(self) -> Optional[Notification]:
        return self._current

    def publish(self, message: str, severity: Severity = "info") -> Notification:
        """Show ``message``, replacing any active notification.

        Raises:
            ValueError: If ``severity`` is not a known level.
        """
        if severity not in SEVERITIES:
            raise ValueError(f"Unknown notification severity {severity!r}.")
        sequence = self._sequence + 1
        expiry: Optional[ScheduledCall] = None
        if self._settings.auto_hide_ms > 0:
            expiry = self._scheduler.call_later(
                self._settings.auto_hide_ms, lambda: self._expire(sequence)
            )
        self._cancel_expiry()
        self._sequence = sequence
        self._expiry = expiry
        notification = Notification(message=message, severity=severity, sequence=sequence)
        self._current = notification
        self._last = notification
        LOGGER.debug("Notification [%s] %s", severity, message)
        self._emit()
        return notification

    def report(self, exc: BaseException) -> Notification:
        """Publish an exception as an ``error`` notification."""
        LOGGER.warning("%s: %s", exc.__class__.__name__, exc)
        return self.publish(str(exc), "error")

    def dismiss(self) -> None:
        """Close the active notification, if any."""
        self._cancel_expiry()
        if self._current is None:
            return
        self._current = None
        self._emit()

    def view(self) -> NotificationView:
        """Return the notification contract for the view layer.

        A dismissed notification keeps its message and severity with
        ``open=False`` so a closing animation has something to show.
        """
        shown = self._current or self._last
        return NotificationView(
            open=self._current is not None,
            message=shown.message if shown else "",
            severity=shown.severity if shown else "success",
            on_close=self.dismiss,
        )

    def subscribe(self, listener: Callable[[Optional[Notification]], None]) -> None:
        self._listeners.append(listener)

    def _expire(self, sequence: int) -> None:
        if self._current is None or self._current.sequence != sequence:
            return
        self._expiry = None
        self._current = None
        self._emit()

    def _cancel_expiry(self) -> None:
        if self._expiry is not None:
            self._expiry.cancel()
            self._expiry = None

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener(self._current)


__all__ = [
    "Severity",
    "SEVERITIES",
    "Notification",
    "NotificationView",
    "NotificationBus",
]
