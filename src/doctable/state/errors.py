"""Document state errors."""


class StateError(Exception):
    """Base exception for document repository operations."""


class DocumentNotFoundError(StateError):
    """Raised when an operation targets a document id that does not exist."""

    def __init__(self, document_id: str) -> None:
        super().__init__(f"Document {document_id!r} does not exist.")
        self.document_id = document_id


class InvalidInputError(StateError):
    """Raised for empty uploads, malformed filters and invalid seed data."""
