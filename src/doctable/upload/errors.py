"""Upload pipeline errors."""


class UploadError(Exception):
    """Base exception for upload pipeline operations."""


class TransportFailure(UploadError):
    """Raised by a transport when bytes could not be delivered."""


class ConcurrentUploadRejected(UploadError):
    """Raised when a file is chosen while another upload is in flight."""


class UploadStateError(UploadError):
    """Raised when an operation is not valid in the pipeline's current state."""
