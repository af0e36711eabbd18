"""Row expansion state."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from doctable.state.models import Document

LOGGER = logging.getLogger(__name__)


class ExpansionController:
    """Track which expandable documents are expanded."""

    def __init__(self, lookup: Callable[[str], Optional[Document]]) -> None:
        self._lookup = lookup
        self._expanded: dict[str, None] = {}

    @property
    def expanded_ids(self) -> list[str]:
        return list(self._expanded)

    def is_expanded(self, document_id: str) -> bool:
        return document_id in self._expanded

    def toggle(self, document_id: str) -> bool:
        """Flip expansion of ``document_id``; non-expandable rows never change.

        Returns:
            bool: Whether the row is expanded after the call.
        """
        document = self._lookup(document_id)
        if document is None or not document.is_expandable:
            LOGGER.debug("Ignoring expansion of %s; not expandable.", document_id)
            return False
        if document_id in self._expanded:
            del self._expanded[document_id]
            return False
        self._expanded[document_id] = None
        return True

    def clear(self) -> None:
        self._expanded.clear()

    def on_document_removed(self, document_id: str) -> None:
        self._expanded.pop(document_id, None)


__all__ = ["ExpansionController"]
