"""Document data models."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class Tag(BaseModel):
    """Label/value pair used for display and filter matching."""

    label: str
    value: str


class Document(BaseModel):
    """A document tracked by the repository.

    Attributes:
        id: Opaque identifier, unique for the repository's lifetime.
        name: Display name, usually the uploaded file name.
        type: Uppercased file extension, or ``UNKNOWN``.
        size: Human-readable size such as ``9kb``.
        last_modified: Timestamp string stamped on create or edit.
        tags: Ordered tags; labels may repeat.
        is_expandable: Whether the row can be expanded to show downloads.
        description: Free text captured by the uploader.
    """

    id: str
    name: str
    type: str
    size: str
    last_modified: str
    tags: List[Tag] = Field(default_factory=list)
    is_expandable: bool = False
    description: str = ""


class NewDocumentInput(BaseModel):
    """Data handed to the repository when an upload completes."""

    file_name: str
    size_bytes: int = Field(ge=0)
    tags: List[Tag] = Field(default_factory=list)
    is_expandable: bool = True
    description: str = ""


class DocumentPatch(BaseModel):
    """Partial update; only fields that are set are merged."""

    name: Optional[str] = None
    type: Optional[str] = None
    size: Optional[str] = None
    last_modified: Optional[str] = None
    tags: Optional[List[Tag]] = None
    is_expandable: Optional[bool] = None
    description: Optional[str] = None

    def changes(self) -> dict:
        """Return the fields to merge into a document."""
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None
        }


__all__ = ["Tag", "Document", "NewDocumentInput", "DocumentPatch"]
