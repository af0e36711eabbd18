"""Table-level controllers and render records."""

from .expansion import ExpansionController
from .selection import SelectionController, SelectionStatus
from .view import (
    DownloadEntry,
    HeaderView,
    RowHandlers,
    RowIntent,
    RowView,
    build_row,
    downloads_for,
)

__all__ = [
    "ExpansionController",
    "SelectionController",
    "SelectionStatus",
    "DownloadEntry",
    "HeaderView",
    "RowHandlers",
    "RowIntent",
    "RowView",
    "build_row",
    "downloads_for",
]
