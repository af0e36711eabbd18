"""Per-table session wiring the controllers together.

``DocumentSession`` is what a view layer talks to. It owns one repository,
selection and expansion controller, upload pipeline, notification bus and
sync service, and turns user intents into calls on them. Failures that the
user should see are published to the bus before being re-raised.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping, Optional

from doctable.config.models import DocTableConfig
from doctable.filtering import FilterOptions, apply_filter, parse_filter
from doctable.notifications import NotificationBus
from doctable.scheduling import AsyncioScheduler, Scheduler
from doctable.state import DocumentRepository
from doctable.state.errors import StateError
from doctable.state.models import Document, Tag
from doctable.sync import SyncCallable, SyncService, simulated_sync
from doctable.table import (
    ExpansionController,
    HeaderView,
    RowIntent,
    RowView,
    SelectionController,
    build_row,
)
from doctable.upload import FileSelection, UploadError, UploadPipeline, UploadSession
from doctable.upload.transport import UploadTransport

LOGGER = logging.getLogger(__name__)


class DocumentSession:
    """Stateful controller behind one document table."""

    def __init__(
        self,
        config: DocTableConfig | None = None,
        *,
        scheduler: Scheduler | None = None,
        transport: UploadTransport | None = None,
        sync_fn: SyncCallable | None = None,
        clock: Callable[[], datetime] = datetime.now,
        documents: Iterable[Document] = (),
    ) -> None:
        """Create a session.

        Args:
            config: Effective configuration; defaults are used when omitted.
            scheduler: Timer source; defaults to the running asyncio loop.
            transport: Upload transport; defaults to a simulated one.
            sync_fn: Sync collaborator; defaults to a simulated two-second sync.
            clock: Time source for document timestamps.
            documents: Seed documents imported with their existing ids.

        Raises:
            RuntimeError: If no scheduler is given and no event loop is running.
        """
        self.config = config or DocTableConfig()
        self.scheduler = scheduler or AsyncioScheduler()
        self.repository = DocumentRepository(self.config.documents, clock=clock)
        self.notifications = NotificationBus(self.scheduler, self.config.notifications)
        self.selection = SelectionController(self.repository.__contains__)
        self.expansion = ExpansionController(self.repository.find)
        self.uploader = UploadPipeline(
            self.repository,
            self.notifications,
            self.scheduler,
            self.config.upload,
            transport=transport,
        )
        self.sync_service = SyncService(sync_fn or simulated_sync(), self.notifications)
        self._filters = FilterOptions(
            brand=self.config.filters.brand, category=self.config.filters.category
        )
        self._uploader_open = False
        self._edit_target: Optional[str] = None
        self._viewing: Optional[str] = None
        self.repository.import_documents(documents)

    # ------------------------------------------------------------------ #
    # Filtering and rendering                                            #
    # ------------------------------------------------------------------ #

    @property
    def filters(self) -> FilterOptions:
        return self._filters

    def set_filters(self, options: FilterOptions | Mapping[str, Any]) -> FilterOptions:
        """Replace the active filter.

        Raises:
            InvalidInputError: If ``options`` is malformed; filters are unchanged.
        """
        try:
            parsed = parse_filter(options)
        except StateError as exc:
            self.notifications.report(exc)
            raise
        self._filters = parsed
        return parsed

    def visible_documents(self) -> list[Document]:
        return apply_filter(self.repository.list(), self._filters)

    def rows(self) -> list[RowView]:
        """Return the render records for every visible document."""
        return [
            build_row(
                document,
                is_selected=self.selection.is_selected(document.id),
                is_expanded=self.expansion.is_expanded(document.id),
            )
            for document in self.visible_documents()
        ]

    def header(self) -> HeaderView:
        visible_ids = [document.id for document in self.visible_documents()]
        return HeaderView(status=self.selection.status(visible_ids), row_count=len(visible_ids))

    # ------------------------------------------------------------------ #
    # Row intents                                                        #
    # ------------------------------------------------------------------ #

    def dispatch(self, intent: RowIntent) -> Any:
        """Route a row intent to the matching operation."""
        handlers: dict[str, Callable[[str], Any]] = {
            "select": self.selection.toggle,
            "toggle_expand": self.expansion.toggle,
            "edit": lambda document_id: self.open_uploader(edit_id=document_id),
            "delete": self.delete,
            "view": self.view,
        }
        try:
            handler = handlers[intent.kind]
        except KeyError:
            raise ValueError(f"Unknown row intent {intent.kind!r}.") from None
        return handler(intent.document_id)

    def toggle_select_all(self, checked: bool) -> None:
        """Select every visible row, or clear the selection."""
        if checked:
            self.selection.select_all(document.id for document in self.visible_documents())
        else:
            self.selection.clear()

    def delete(self, document_id: str) -> Optional[Document]:
        """Remove a document and evict it from selection and expansion.

        Returns:
            Optional[Document]: The deleted document, or ``None`` if it was absent.
        """
        removed = self.repository.remove(document_id)
        self.selection.on_document_removed(document_id)
        self.expansion.on_document_removed(document_id)
        if removed is None:
            return None
        if self._viewing == document_id:
            self._viewing = None
        self.notifications.publish(f'"{removed.name}" has been deleted', "success")
        return removed

    def view(self, document_id: str) -> Document:
        """Open the viewer on a document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """
        document = self._require(document_id)
        self._viewing = document_id
        return document

    @property
    def viewing(self) -> Optional[Document]:
        if self._viewing is None:
            return None
        return self.repository.find(self._viewing)

    def close_viewer(self) -> None:
        self._viewing = None

    # ------------------------------------------------------------------ #
    # Add/edit workflow                                                  #
    # ------------------------------------------------------------------ #

    @property
    def uploader_open(self) -> bool:
        return self._uploader_open

    @property
    def editing(self) -> Optional[Document]:
        if self._edit_target is None:
            return None
        return self.repository.find(self._edit_target)

    def open_uploader(self, edit_id: Optional[str] = None) -> None:
        """Open the uploader to add a document, or to replace ``edit_id``.

        Raises:
            DocumentNotFoundError: If ``edit_id`` does not exist.
        """
        if edit_id is not None:
            self._require(edit_id)
        self.uploader.cancel()
        self._uploader_open = True
        self._edit_target = edit_id

    def choose_file(self, selection: FileSelection) -> UploadSession:
        """Start uploading the file the user picked.

        New documents carry the repository's default tags plus one tag per
        active filter field, so they are visible once committed.

        Raises:
            InvalidInputError: For empty files.
            ConcurrentUploadRejected: If an upload is already running.
        """
        if not self._uploader_open:
            self.open_uploader()
        tags = None
        if self._edit_target is None:
            tags = [*self.repository.default_tags(), *self._filter_tags()]
        try:
            return self.uploader.start(selection, edit_target=self._edit_target, tags=tags)
        except (StateError, UploadError) as exc:
            self.notifications.report(exc)
            raise

    def submit_upload(self) -> Document:
        """Confirm a completed upload and close the uploader.

        Raises:
            UploadStateError: If the upload has not completed.
        """
        try:
            document = self.uploader.submit()
        except (StateError, UploadError) as exc:
            self.notifications.report(exc)
            raise
        self.close_uploader()
        return document

    def close_uploader(self) -> None:
        """Close the uploader, discarding any unfinished upload."""
        self.uploader.cancel()
        self._uploader_open = False
        self._edit_target = None

    def add_multiple(self) -> None:
        self.notifications.publish("This feature is coming soon!", "info")

    async def sync(self) -> bool:
        """Run the sync collaborator; see ``SyncService.sync``."""
        return await self.sync_service.sync()

    def teardown(self) -> None:
        """Reset all per-session state."""
        self.close_uploader()
        self.close_viewer()
        self.selection.clear()
        self.expansion.clear()
        self.notifications.dismiss()
        LOGGER.debug("Session state reset.")

    def _filter_tags(self) -> list[Tag]:
        return [
            Tag(label=name.capitalize(), value=value)
            for name, value in self._filters.constraints().items()
        ]

    def _require(self, document_id: str) -> Document:
        try:
            return self.repository.get(document_id)
        except StateError as exc:
            self.notifications.report(exc)
            raise


__all__ = ["DocumentSession"]
