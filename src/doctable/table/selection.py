"""Row selection state."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Iterable

LOGGER = logging.getLogger(__name__)


class SelectionStatus(str, Enum):
    """Three-state value driving the "select all" checkbox."""

    NONE = "none"
    SOME = "some"
    ALL = "all"


class SelectionController:
    """Track which document ids are selected.

    Ids that the ``exists`` predicate rejects are ignored, so the selection
    is always a subset of the repository.
    """

    def __init__(self, exists: Callable[[str], bool]) -> None:
        self._exists = exists
        self._selected: dict[str, None] = {}

    @property
    def selected_ids(self) -> list[str]:
        """Return selected ids in the order they were selected."""
        return list(self._selected)

    def is_selected(self, document_id: str) -> bool:
        return document_id in self._selected

    def toggle(self, document_id: str) -> bool:
        """Flip membership of ``document_id`` and return the new membership."""
        if document_id in self._selected:
            del self._selected[document_id]
            return False
        if not self._exists(document_id):
            LOGGER.debug("Ignoring selection of unknown document %s.", document_id)
            return False
        self._selected[document_id] = None
        return True

    def select_all(self, document_ids: Iterable[str]) -> None:
        """Replace the selection with exactly ``document_ids``."""
        self._selected = dict.fromkeys(
            document_id for document_id in document_ids if self._exists(document_id)
        )

    def clear(self) -> None:
        self._selected.clear()

    def status(self, all_ids: Iterable[str]) -> SelectionStatus:
        """Compare the selection against the ids currently on screen."""
        if not self._selected:
            return SelectionStatus.NONE
        if set(self._selected) == set(all_ids):
            return SelectionStatus.ALL
        return SelectionStatus.SOME

    def on_document_removed(self, document_id: str) -> None:
        self._selected.pop(document_id, None)

    def __len__(self) -> int:
        return len(self._selected)


__all__ = ["SelectionStatus", "SelectionController"]
