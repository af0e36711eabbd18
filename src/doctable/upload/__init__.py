"""Simulated upload pipeline for the add/edit workflow."""

from .errors import ConcurrentUploadRejected, TransportFailure, UploadError, UploadStateError
from .models import (
    CompleteState,
    ErrorState,
    FileSelection,
    IdleState,
    UploadingState,
    UploadSession,
    UploadState,
)
from .pipeline import UploadPipeline
from .transport import SimulatedTransport, UploadTransport

__all__ = [
    "UploadPipeline",
    "UploadSession",
    "UploadState",
    "IdleState",
    "UploadingState",
    "CompleteState",
    "ErrorState",
    "FileSelection",
    "SimulatedTransport",
    "UploadTransport",
    "UploadError",
    "TransportFailure",
    "ConcurrentUploadRejected",
    "UploadStateError",
]
