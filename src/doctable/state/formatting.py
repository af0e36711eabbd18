"""Derive display attributes from uploaded file metadata."""

from __future__ import annotations

import math

_KIB = 1024
_MIB = 1024 * 1024


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def kilobyte_label(size_bytes: int) -> str:
    """Return the table's size column value, e.g. ``9216 -> "9kb"``.

    Sizes below one kilobyte always render as ``"0kb"``.
    """
    if size_bytes < _KIB:
        return "0kb"
    return f"{_round_half_up(size_bytes / _KIB)}kb"


def document_type(file_name: str) -> str:
    """Return the uppercased extension of ``file_name`` or ``"UNKNOWN"``."""
    stem, dot, extension = file_name.rpartition(".")
    if not dot or not stem or not extension.strip():
        return "UNKNOWN"
    return extension.strip().upper()


def human_file_size(size_bytes: int) -> str:
    """Format a byte count the way the uploader caption shows it."""
    if size_bytes < _KIB:
        return f"{size_bytes} Bytes"
    if size_bytes < _MIB:
        return f"{_round_half_up(size_bytes / _KIB)} KB"
    return f"{size_bytes / _MIB:.2f} MB"


__all__ = ["kilobyte_label", "document_type", "human_file_size"]
