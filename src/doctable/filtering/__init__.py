"""Filter engine for document tables."""

from .engine import FilterOptions, apply_filter, matches, parse_filter

__all__ = ["FilterOptions", "apply_filter", "matches", "parse_filter"]
