"""Upload session and state models."""

from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from doctable.state.models import Tag


class FileSelection(BaseModel):
    """A file picked or dropped by the user.

    Attributes:
        file_name: Name of the chosen file.
        size_bytes: Size of the file in bytes.
        mime_or_extension: MIME type or extension reported by the picker.
    """

    file_name: str
    size_bytes: int
    mime_or_extension: str = ""

    @property
    def extension(self) -> str:
        """Return the lowercase extension, preferring the file name's suffix."""
        _, dot, suffix = self.file_name.rpartition(".")
        if dot and suffix:
            return suffix.lower()
        hint = self.mime_or_extension.lower()
        return hint.rpartition("/")[2].lstrip(".")


class _UploadStateBase(BaseModel):
    model_config = ConfigDict(frozen=True)


class IdleState(_UploadStateBase):
    """No file chosen."""

    kind: Literal["idle"] = "idle"


class UploadingState(_UploadStateBase):
    """Transfer in progress."""

    kind: Literal["uploading"] = "uploading"
    progress: int = Field(default=0, ge=0, le=100)


class CompleteState(_UploadStateBase):
    """Transfer finished and committed to the repository."""

    kind: Literal["complete"] = "complete"
    document_id: str


class ErrorState(_UploadStateBase):
    """Transfer failed; waiting for retry or cancel."""

    kind: Literal["error"] = "error"
    reason: str


UploadState = Annotated[
    Union[IdleState, UploadingState, CompleteState, ErrorState],
    Field(discriminator="kind"),
]


class UploadSession(BaseModel):
    """Transient state of one add or edit upload.

    Attributes:
        session_id: Generation number identifying the live attempt.
        file_name: Name of the file being uploaded.
        file_size_bytes: Size of the file in bytes.
        progress: Percentage transferred, 0 to 100.
        state: Current state variant.
        description: Description entered in the uploader.
        tags: Tags entered in the uploader.
        edit_target: Id of the document being replaced, when editing.
        document_id: Id of the committed document once complete.
        progress_log: Every progress value visited by the current attempt.
    """

    session_id: int
    file_name: str
    file_size_bytes: int
    progress: int = 0
    state: UploadState = Field(default_factory=UploadingState)
    description: str = ""
    tags: List[Tag] = Field(default_factory=list)
    edit_target: Optional[str] = None
    document_id: Optional[str] = None
    progress_log: List[int] = Field(default_factory=lambda: [0])


__all__ = [
    "FileSelection",
    "IdleState",
    "UploadingState",
    "CompleteState",
    "ErrorState",
    "UploadState",
    "UploadSession",
]
