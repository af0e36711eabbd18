"""Tag-based document filtering."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from doctable.state.errors import InvalidInputError
from doctable.state.models import Document


class FilterOptions(BaseModel):
    """Tag constraints a document must satisfy to be visible.

    Each field names a tag label; empty fields impose no constraint.
    """

    model_config = ConfigDict(extra="forbid", strict=True, frozen=True)

    brand: str
    category: Optional[str] = None

    def constraints(self) -> dict[str, str]:
        """Return the active ``label -> value`` constraints in field order."""
        return {
            name: value
            for name, value in self.model_dump().items()
            if isinstance(value, str) and value != ""
        }


def parse_filter(raw: Mapping[str, Any] | FilterOptions) -> FilterOptions:
    """Validate raw filter input.

    Raises:
        InvalidInputError: On unknown fields, missing ``brand`` or non-string values.
    """
    if isinstance(raw, FilterOptions):
        return raw
    try:
        return FilterOptions.model_validate(dict(raw))
    except (TypeError, ValueError, ValidationError) as exc:
        raise InvalidInputError(f"Malformed filter: {exc}") from exc


def matches(document: Document, options: FilterOptions) -> bool:
    """Return whether ``document`` satisfies every active constraint."""
    for name, value in options.constraints().items():
        label = name.casefold()
        if not any(tag.label.casefold() == label and tag.value == value for tag in document.tags):
            return False
    return True


def apply_filter(documents: Iterable[Document], options: FilterOptions) -> list[Document]:
    """Return the documents passing ``options``, preserving input order."""
    if not options.constraints():
        return list(documents)
    return [document for document in documents if matches(document, options)]


__all__ = ["FilterOptions", "parse_filter", "matches", "apply_filter"]
