"""Guard around the external document sync collaborator."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from doctable.notifications import NotificationBus

LOGGER = logging.getLogger(__name__)

SyncCallable = Callable[[], Awaitable[None]]


def simulated_sync(delay_seconds: float = 2.0) -> SyncCallable:
    """Return a collaborator that pretends to sync after ``delay_seconds``."""

    async def _sync() -> None:
        await asyncio.sleep(delay_seconds)

    return _sync


class SyncService:
    """Run at most one sync at a time and report its outcome."""

    def __init__(
        self,
        sync_fn: SyncCallable,
        bus: NotificationBus,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._sync_fn = sync_fn
        self._bus = bus
        self._clock = clock
        self._in_flight = False
        self.last_synced_at: Optional[datetime] = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def sync(self) -> bool:
        """Run the collaborator unless a sync is already running.

        Returns:
            bool: ``True`` if a sync ran and succeeded, ``False`` if it was
            skipped or failed.
        """
        if self._in_flight:
            LOGGER.debug("Sync already in flight; ignoring request.")
            return False

        self._in_flight = True
        try:
            await self._sync_fn()
        except Exception as exc:
            LOGGER.warning("Sync failed: %s", exc)
            self._bus.publish(f"Sync failed: {exc}", "error")
            return False
        finally:
            self._in_flight = False

        self.last_synced_at = self._clock()
        self._bus.publish("Documents synchronized successfully!", "success")
        return True


__all__ = ["SyncCallable", "SyncService", "simulated_sync"]
