"""Document synchronization helpers."""

from .service import SyncCallable, SyncService, simulated_sync

__all__ = ["SyncCallable", "SyncService", "simulated_sync"]
