"""
Print queue data models.

A queue entry is an identifier (the document's source URL string) paired
with its DocumentSettings. Settings are always normalized before they are
used or persisted, so legacy or corrupted records heal on the next write.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Any


MIN_QUANTITY = 1


@dataclass(frozen=True)
class DocumentSettings:
    """
    Per-document print options.

    Serialized as a flat record ``{"quantity": int, "isA3": bool}``.
    """

    quantity: int = MIN_QUANTITY
    """Number of copies to print."""

    is_a3: bool = False
    """Print on A3 paper instead of the default size."""

    @property
    def normalized(self) -> "DocumentSettings":
        """Same settings with quantity clamped to at least 1."""
        return normalize_settings(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted record."""
        return {"quantity": self.quantity, "isA3": self.is_a3}

    @classmethod
    def from_dict(cls, data: Any) -> "DocumentSettings":
        """
        Create from a persisted record.

        Missing or mistyped fields fall back to the defaults; the result is
        normalized.
        """
        if not isinstance(data, dict):
            return cls()

        quantity = data.get("quantity", MIN_QUANTITY)
        # bool is an int subclass; a stray True must not become one copy silently
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            quantity = MIN_QUANTITY

        is_a3 = data.get("isA3", False)
        if not isinstance(is_a3, bool):
            is_a3 = False

        return cls(quantity=quantity, is_a3=is_a3).normalized


DEFAULT_SETTINGS = DocumentSettings()


def normalize_settings(settings: DocumentSettings) -> DocumentSettings:
    """Clamp quantity to a minimum of 1; is_a3 passes through unchanged."""
    if settings.quantity >= MIN_QUANTITY:
        return settings
    return replace(settings, quantity=MIN_QUANTITY)


@dataclass(frozen=True)
class JobDescriptor:
    """
    Normalized view of one queue entry, used for display and planning.
    """

    identifier: str
    """Source URL string of the document (unique within the queue)."""

    quantity: int
    """Number of copies (always >= 1)."""

    is_a3: bool
    """A3 paper flag."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "identifier": self.identifier,
            "quantity": self.quantity,
            "isA3": self.is_a3,
        }
