"""Rows returned by a SQL query."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

QueryRow = dict[str, Any]


@dataclass
class QueryResponse:
    """Ordered rows, each a mapping from column name to value."""

    rows: list[QueryRow] = field(default_factory=list)

    def __iter__(self) -> Iterator[QueryRow]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def count(self) -> int:
        return len(self.rows)

    def get_row(self, index: int) -> Optional[QueryRow]:
        """Return the row at ``index``, or None when past the end."""
        if index < 0:
            raise IndexError(f"row index must not be negative: {index}")
        if index >= self.count():
            return None
        return self.rows[index]