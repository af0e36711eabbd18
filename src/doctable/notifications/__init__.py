"""User-facing notifications."""

from .bus import SEVERITIES, Notification, NotificationBus, NotificationView, Severity

__all__ = ["SEVERITIES", "Notification", "NotificationBus", "NotificationView", "Severity"]
