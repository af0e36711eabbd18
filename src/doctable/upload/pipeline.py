"""Upload state machine feeding the document repository.

Transitions::

    idle      --start-->        uploading(0)
    uploading --tick-->         uploading(min(p + step, 100))
    uploading(100) --delay-->   complete      (document committed)
    uploading --cancel-->       idle
    uploading --failure-->      error
    error     --retry-->        uploading(0)
    error     --cancel-->       idle
    complete  --reset/submit--> idle

Every scheduled callback carries the generation that armed it; cancel, reset
and retry bump the generation, so callbacks from a discarded attempt are
dropped.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from doctable.config.models import UploadSettings
from doctable.notifications import NotificationBus
from doctable.scheduling import ScheduledCall, Scheduler
from doctable.state import DocumentRepository
from doctable.state.errors import DocumentNotFoundError, InvalidInputError
from doctable.state.formatting import document_type, human_file_size, kilobyte_label
from doctable.state.models import Document, DocumentPatch, NewDocumentInput, Tag

from .errors import ConcurrentUploadRejected, TransportFailure, UploadStateError
from .models import (
    CompleteState,
    ErrorState,
    FileSelection,
    IdleState,
    UploadingState,
    UploadSession,
    UploadState,
)
from .transport import SimulatedTransport, UploadTransport

LOGGER = logging.getLogger(__name__)


class UploadPipeline:
    """Drive one upload session at a time through its states."""

    def __init__(
        self,
        repository: DocumentRepository,
        bus: NotificationBus,
        scheduler: Scheduler,
        settings: UploadSettings | None = None,
        *,
        transport: UploadTransport | None = None,
    ) -> None:
        """Initialize an idle pipeline.

        Args:
            repository: Receives the document when an upload completes.
            bus: Surfaces completion, failure and soft-limit messages.
            scheduler: Runs progress ticks and the completion delay.
            settings: Step size, cadence and soft limits.
            transport: Moves the bytes; defaults to a simulated transport.
        """
        self._repository = repository
        self._bus = bus
        self._scheduler = scheduler
        self._settings = settings or UploadSettings()
        self._transport = transport or SimulatedTransport()
        self._session: Optional[UploadSession] = None
        self._generation = 0
        self._pending: Optional[ScheduledCall] = None
        self._listeners: list[Callable[[UploadState], None]] = []

    @property
    def session(self) -> Optional[UploadSession]:
        return self._session

    @property
    def state(self) -> UploadState:
        if self._session is None:
            return IdleState()
        return self._session.state

    @property
    def is_uploading(self) -> bool:
        return self.state.kind == "uploading"

    # ------------------------------------------------------------------ #
    # Transitions                                                        #
    # ------------------------------------------------------------------ #

    def start(
        self,
        selection: FileSelection,
        *,
        edit_target: Optional[str] = None,
        description: str = "",
        tags: Optional[Iterable[Tag]] = None,
    ) -> UploadSession:
        """Begin uploading ``selection``.

        Args:
            selection: File chosen by the user.
            edit_target: Id of the document to replace, if editing.
            description: Description to store on the document.
            tags: Tags to store on the document.

        Returns:
            UploadSession: The new session in the ``uploading`` state.

        Raises:
            ConcurrentUploadRejected: If another upload is in flight.
            InvalidInputError: If the file has no name or no bytes.
        """
        if self.is_uploading:
            raise ConcurrentUploadRejected(
                "Another upload is already in progress; cancel it before choosing a new file."
            )
        file_name = selection.file_name.strip()
        if not file_name:
            raise InvalidInputError("Choose a file to upload.")
        if selection.size_bytes <= 0:
            raise InvalidInputError(f'"{file_name}" is empty; zero-byte files cannot be uploaded.')

        if self._session is not None:
            self._discard("replaced")
        self._warn_on_soft_limits(selection)

        self._generation += 1
        session = UploadSession(
            session_id=self._generation,
            file_name=file_name,
            file_size_bytes=selection.size_bytes,
            description=description,
            tags=list(tags or []),
            edit_target=edit_target,
        )
        # The session only becomes current once its first tick is armed.
        self._schedule(self._settings.tick_interval_ms, self._tick)
        self._session = session
        LOGGER.debug("Upload %s started for %s.", self._generation, file_name)
        self._emit()
        return session

    def cancel(self) -> None:
        """Discard the current session, whatever its state."""
        if self._session is not None:
            self._discard("cancelled")
            self._emit()

    def reset(self) -> None:
        """Remove the chosen file and return to ``idle``."""
        if self._session is not None:
            self._discard("reset")
            self._emit()

    def retry(self) -> UploadSession:
        """Restart a failed upload from zero.

        Raises:
            UploadStateError: If the pipeline is not in the ``error`` state.
        """
        session = self._session
        if session is None or session.state.kind != "error":
            raise UploadStateError("Only a failed upload can be retried.")
        self._cancel_pending()
        self._generation += 1
        self._schedule(self._settings.tick_interval_ms, self._tick)
        session.session_id = self._generation
        session.progress = 0
        session.progress_log = [0]
        session.state = UploadingState(progress=0)
        LOGGER.debug("Upload %s retrying %s.", self._generation, session.file_name)
        self._emit()
        return session

    def fail(self, reason: str) -> bool:
        """Report an out-of-band transport failure.

        Returns:
            bool: ``False`` when no upload was in flight and nothing changed.
        """
        if not self.is_uploading:
            LOGGER.debug("Ignoring transport failure outside an upload: %s", reason)
            return False
        self._cancel_pending()
        self._enter_error(reason)
        return True

    def describe(
        self,
        description: Optional[str] = None,
        tags: Optional[Iterable[Tag]] = None,
    ) -> UploadSession:
        """Update the description or tags of the active session.

        Raises:
            UploadStateError: If no file has been chosen.
        """
        session = self._session
        if session is None:
            raise UploadStateError("Choose a file before adding a description or tags.")
        if description is not None:
            session.description = description
        if tags is not None:
            session.tags = list(tags)
        return session

    def submit(self) -> Document:
        """Finish the workflow after completion and return to ``idle``.

        Raises:
            UploadStateError: If the upload has not completed.
            DocumentNotFoundError: If the committed document was deleted since.
        """
        session = self._session
        if session is None or session.state.kind != "complete":
            raise UploadStateError("The upload has not completed yet.")
        document_id = session.state.document_id
        self._discard("submitted")
        self._emit()
        return self._repository.get(document_id)

    def status_line(self) -> str:
        """Return the caption shown under the uploader's file icon."""
        state = self.state
        if state.kind == "uploading" and self._session is not None:
            size = human_file_size(self._session.file_size_bytes)
            return f"{state.progress}% Uploading · {size}"
        if state.kind == "complete":
            return "Upload complete"
        if state.kind == "error":
            return f"Upload failed: {state.reason}"
        return "Click or drop file to upload"

    def subscribe(self, listener: Callable[[UploadState], None]) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _tick(self) -> None:
        session = self._session
        if session is None or session.state.kind != "uploading":
            return
        progress = min(session.state.progress + self._settings.progress_step, 100)
        try:
            self._transport.send(session, progress)
        except TransportFailure as exc:
            self._enter_error(str(exc))
            return

        session.progress = progress
        session.progress_log.append(progress)
        session.state = UploadingState(progress=progress)
        self._emit()
        if progress >= 100:
            self._schedule(self._settings.completion_delay_ms, self._complete)
        else:
            self._schedule(self._settings.tick_interval_ms, self._tick)

    def _complete(self) -> None:
        session = self._session
        if session is None or session.state.kind != "uploading":
            return
        try:
            document, message = self._commit(session)
        except DocumentNotFoundError as exc:
            self._enter_error(str(exc))
            return
        session.document_id = document.id
        session.state = CompleteState(document_id=document.id)
        LOGGER.debug("Upload %s complete as %s.", session.session_id, document.id)
        self._bus.publish(message, "success")
        self._emit()

    def _commit(self, session: UploadSession) -> tuple[Document, str]:
        if session.edit_target is None:
            document = self._repository.add(
                NewDocumentInput(
                    file_name=session.file_name,
                    size_bytes=session.file_size_bytes,
                    tags=session.tags,
                    description=session.description,
                )
            )
            return document, f'"{document.name}" has been added'

        previous = self._repository.get(session.edit_target)
        patch = DocumentPatch(
            name=session.file_name,
            type=document_type(session.file_name),
            size=kilobyte_label(session.file_size_bytes),
            last_modified=self._repository.timestamp(),
            description=session.description or None,
            tags=session.tags or None,
        )
        document = self._repository.update(previous.id, patch)
        return document, f'"{previous.name}" has been updated'

    def _enter_error(self, reason: str) -> None:
        session = self._session
        if session is None:
            return
        session.state = ErrorState(reason=reason)
        LOGGER.warning("Upload of %s failed: %s", session.file_name, reason)
        self._bus.publish(f'Upload of "{session.file_name}" failed: {reason}', "error")
        self._emit()

    def _warn_on_soft_limits(self, selection: FileSelection) -> None:
        limit_mb = self._settings.max_file_size_mb
        accepted = {extension.lower() for extension in self._settings.accepted_extensions}
        if limit_mb and selection.size_bytes > limit_mb * 1024 * 1024:
            LOGGER.warning("%s exceeds the %s MB soft limit.", selection.file_name, limit_mb)
            self._bus.publish(
                f'"{selection.file_name}" is larger than {limit_mb} MB; the upload may be slow.',
                "warning",
            )
        elif accepted and selection.extension not in accepted:
            LOGGER.warning("%s has an unsupported extension.", selection.file_name)
            self._bus.publish(
                f'"{selection.file_name}" is not a supported file type.',
                "warning",
            )

    def _schedule(self, delay_ms: int, action: Callable[[], None]) -> None:
        generation = self._generation
        self._pending = self._scheduler.call_later(
            delay_ms, lambda: self._run_if_current(generation, action)
        )

    def _run_if_current(self, generation: int, action: Callable[[], None]) -> None:
        if generation != self._generation:
            LOGGER.debug("Dropping stale upload callback from generation %s.", generation)
            return
        self._pending = None
        action()

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _discard(self, reason: str) -> None:
        self._cancel_pending()
        self._generation += 1
        if self._session is not None:
            LOGGER.debug("Upload session for %s %s.", self._session.file_name, reason)
        self._session = None

    def _emit(self) -> None:
        state = self.state
        for listener in list(self._listeners):
            listener(state)


__all__ = ["UploadPipeline"]
