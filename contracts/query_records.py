"""
query_records.py

The value type that flows from a query source to the anti-pattern engine.

A :class:`QueryRecord` is one unit of SQL text plus a provenance label. Catalog
rows also carry who ran the query and how expensive it was, so findings can be
ranked downstream.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

INLINE_QUERY_LABEL = "inline query"


@dataclass(frozen=True)
class QueryRecord:
    """
    Immutable query + provenance.

    Invariants:
      - query_text is never empty (whitespace-only text is kept as given)
      - source_label is never empty
    """
    query_text: str
    source_label: str

    # Catalog-only metadata (empty for file/CSV/inline inputs)
    project_id: str = ""
    user_email: str = ""
    slot_hours: float | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.query_text, str) or not self.query_text:
            raise ValueError("query_text must be a non-empty string")
        if not isinstance(self.source_label, str) or not self.source_label:
            raise ValueError("source_label must be a non-empty string")

    def to_dict(self) -> dict[str, Any]:
        return {
            "query_text": self.query_text,
            "source_label": self.source_label,
            "project_id": self.project_id,
            "user_email": self.user_email,
            "slot_hours": self.slot_hours,
        }


__all__ = ["INLINE_QUERY_LABEL", "QueryRecord"]
