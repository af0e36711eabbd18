"""Transports that move upload bytes.

The pipeline calls ``send`` once per tick with the progress the tick is about
to report. A real transport would flush the matching slice of the file and
raise ``TransportFailure`` when the connection drops.
"""

from __future__ import annotations

from typing import Optional, Protocol

from .errors import TransportFailure
from .models import UploadSession


class UploadTransport(Protocol):
    def send(self, session: UploadSession, progress: int) -> None: ...


class SimulatedTransport:
    """In-memory transport that can be told to fail at a given progress."""

    def __init__(
        self,
        *,
        fail_at: Optional[int] = None,
        failures: int = 1,
        reason: str = "Connection lost during upload.",
    ) -> None:
        self._fail_at = fail_at
        self._remaining_failures = failures
        self._reason = reason
        self.sent: list[tuple[int, int]] = []

    def send(self, session: UploadSession, progress: int) -> None:
        if (
            self._fail_at is not None
            and self._remaining_failures > 0
            and progress >= self._fail_at
        ):
            self._remaining_failures -= 1
            raise TransportFailure(self._reason)
        self.sent.append((session.session_id, progress))


__all__ = ["UploadTransport", "SimulatedTransport"]
