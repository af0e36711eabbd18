"""Document repository for the doctable controller layer."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Optional

import yaml
from pydantic import ValidationError

from doctable.config.models import DocumentSettings

from .errors import DocumentNotFoundError, InvalidInputError, StateError
from .formatting import document_type, human_file_size, kilobyte_label
from .models import Document, DocumentPatch, NewDocumentInput, Tag

LOGGER = logging.getLogger(__name__)


class DocumentRepository:
    """Own the authoritative, insertion-ordered list of documents."""

    def __init__(
        self,
        settings: DocumentSettings | None = None,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize an empty repository.

        Args:
            settings: Id prefix, timestamp format and default tags.
            clock: Source of the current time for ``last_modified`` stamps.
        """
        self._settings = settings or DocumentSettings()
        self._clock = clock
        self._documents: dict[str, Document] = {}
        self._issued_ids: set[str] = set()
        self._counter = 0

    def add(self, doc: NewDocumentInput) -> Document:
        """Create a document from upload data and return the stored record.

        Args:
            doc: File name, byte count and optional tags of the upload.

        Returns:
            Document: Stored document with a fresh id and derived attributes.
        """
        document = Document(
            id=self._next_id(),
            name=doc.file_name,
            type=document_type(doc.file_name),
            size=kilobyte_label(doc.size_bytes),
            last_modified=self.timestamp(),
            tags=list(doc.tags) if doc.tags else self.default_tags(),
            is_expandable=doc.is_expandable,
            description=doc.description,
        )
        self._documents[document.id] = document
        LOGGER.debug("Added document %s (%s).", document.id, document.name)
        return document

    def update(self, document_id: str, patch: DocumentPatch) -> Document:
        """Merge ``patch`` into an existing document.

        Raises:
            DocumentNotFoundError: If ``document_id`` is not present.
        """
        current = self.get(document_id)
        merged = {**current.model_dump(), **patch.changes()}
        updated = Document.model_validate(merged)
        self._documents[document_id] = updated
        LOGGER.debug("Updated document %s.", document_id)
        return updated

    def remove(self, document_id: str) -> Optional[Document]:
        """Delete a document; removing an absent id is a no-op.

        Returns:
            Optional[Document]: The removed document, or ``None`` if absent.
        """
        removed = self._documents.pop(document_id, None)
        if removed is not None:
            LOGGER.debug("Removed document %s.", document_id)
        return removed

    def list(self) -> list[Document]:
        """Return all documents in insertion order."""
        return list(self._documents.values())

    def get(self, document_id: str) -> Document:
        """Return a document or raise ``DocumentNotFoundError``."""
        try:
            return self._documents[document_id]
        except KeyError:
            raise DocumentNotFoundError(document_id) from None

    def find(self, document_id: str) -> Optional[Document]:
        return self._documents.get(document_id)

    def ids(self) -> list[str]:
        return list(self._documents)

    def import_documents(self, documents: Iterable[Document]) -> list[Document]:
        """Register pre-built documents, keeping their ids.

        Raises:
            InvalidInputError: If an id was already issued by this repository.
        """
        imported: list[Document] = []
        for document in documents:
            if document.id in self._issued_ids:
                raise InvalidInputError(f"Document id {document.id!r} is already in use.")
            self._issued_ids.add(document.id)
            self._documents[document.id] = document
            imported.append(document)
        return imported

    def timestamp(self) -> str:
        """Return the current time in the configured ``last_modified`` format."""
        return self._clock().strftime(self._settings.timestamp_format)

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._documents

    def _next_id(self) -> str:
        while True:
            self._counter += 1
            candidate = f"{self._settings.id_prefix}-{self._counter}"
            if candidate not in self._issued_ids:
                self._issued_ids.add(candidate)
                return candidate

    def default_tags(self) -> list[Tag]:
        """Return the tags stamped on uploads that carry none."""
        tags: list[Tag] = []
        if self._settings.stamp_year_tag:
            tags.append(Tag(label="Year", value=str(self._clock().year)))
        tags.extend(Tag(label=item.label, value=item.value) for item in self._settings.default_tags)
        return tags


def load_seed_file(path: Path) -> list[Document]:
    """Read documents from a YAML or JSON seed file.

    The file holds either a list of documents or a mapping with a
    ``documents`` key.

    Raises:
        InvalidInputError: If the file is missing, unparsable or invalid.
    """
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise InvalidInputError(f"Cannot read seed file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise InvalidInputError(f"Invalid seed file {path}: {exc}") from exc

    if isinstance(raw, dict):
        raw = raw.get("documents")
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise InvalidInputError(f"Seed file {path} must contain a list of documents.")

    try:
        return [Document.model_validate(item) for item in raw]
    except ValidationError as exc:
        raise InvalidInputError(f"Invalid document in {path}: {exc}") from exc


__all__ = [
    "DocumentRepository",
    "Document",
    "DocumentPatch",
    "NewDocumentInput",
    "Tag",
    "StateError",
    "DocumentNotFoundError",
    "InvalidInputError",
    "document_type",
    "human_file_size",
    "kilobyte_label",
    "load_seed_file",
]
