"""Render-contract records handed to the view layer.

Rows carry their handlers as plain data: each ``RowIntent`` names the action
and the document id it targets, and the view passes it back to
``DocumentSession.dispatch``. Nothing here captures a document in a closure,
so reordering or re-filtering rows cannot route an action to the wrong
document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

from doctable.state.models import Document

from .selection import SelectionStatus

IntentKind = Literal["select", "toggle_expand", "edit", "delete", "view"]


@dataclass(frozen=True, slots=True)
class RowIntent:
    """A user action on a specific row."""

    kind: IntentKind
    document_id: str


@dataclass(frozen=True, slots=True)
class RowHandlers:
    """Intents available on a row, keyed by the row's document id."""

    document_id: str

    @property
    def on_select(self) -> RowIntent:
        return RowIntent("select", self.document_id)

    @property
    def on_toggle_expand(self) -> RowIntent:
        return RowIntent("toggle_expand", self.document_id)

    @property
    def on_edit(self) -> RowIntent:
        return RowIntent("edit", self.document_id)

    @property
    def on_delete(self) -> RowIntent:
        return RowIntent("delete", self.document_id)

    @property
    def on_view(self) -> RowIntent:
        return RowIntent("view", self.document_id)


@dataclass(frozen=True, slots=True)
class DownloadEntry:
    """A file listed under an expanded row."""

    name: str
    last_modified: str
    size: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RowView:
    """Everything the view needs to draw one row.

    Attributes:
        document: The document shown on the row.
        is_selected: Whether the row's checkbox is checked.
        is_expanded: Whether the row is expanded.
        handlers: Intents the row can emit.
        expanded_content: Downloads shown under the row when it is expanded.
    """

    document: Document
    is_selected: bool
    is_expanded: bool
    handlers: RowHandlers
    expanded_content: Optional[list[DownloadEntry]] = field(default=None)


@dataclass(frozen=True, slots=True)
class HeaderView:
    """State of the "select all" checkbox."""

    status: SelectionStatus
    row_count: int

    @property
    def checked(self) -> bool:
        return self.status is SelectionStatus.ALL

    @property
    def indeterminate(self) -> bool:
        return self.status is SelectionStatus.SOME


def downloads_for(document: Document) -> list[DownloadEntry]:
    """Return the download listing shown when ``document`` is expanded."""
    return [
        DownloadEntry(name=document.name, size=document.size, last_modified=document.last_modified),
        DownloadEntry(name=f"{document.name} - Appendix", last_modified=document.last_modified),
        DownloadEntry(name=f"{document.name} - References", last_modified=document.last_modified),
    ]


def build_row(document: Document, *, is_selected: bool, is_expanded: bool) -> RowView:
    """Assemble the row record for ``document``."""
    show_details = document.is_expandable and is_expanded
    return RowView(
        document=document,
        is_selected=is_selected,
        is_expanded=is_expanded,
        handlers=RowHandlers(document.id),
        expanded_content=downloads_for(document) if show_details else None,
    )


__all__ = [
    "IntentKind",
    "RowIntent",
    "RowHandlers",
    "DownloadEntry",
    "RowView",
    "HeaderView",
    "downloads_for",
    "build_row",
]
