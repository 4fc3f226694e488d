"""Table schema and row entities.

A table is schema-lite: it has an ordered list of column names, the first
of which is always the implicit identity column, and every cell is opaque
text. The schema is what the header line of a table file decodes into.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from tabstore.domain.value_objects import IDENTITY_COLUMN


@dataclass(frozen=True)
class TableSchema:
    """Ordered column names of a table with a name -> position lookup.

    Attributes:
        columns: Column names in storage order, identity column first.
    """

    columns: tuple[str, ...]
    _positions: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "_positions", {name: i for i, name in enumerate(self.columns)}
        )

    @classmethod
    def for_new_table(cls, user_columns: Iterable[str]) -> TableSchema:
        """Build the schema of a freshly created table.

        The identity column is prepended; callers pass only their own
        column names.
        """
        return cls(columns=(IDENTITY_COLUMN, *user_columns))

    @property
    def value_columns(self) -> tuple[str, ...]:
        """Columns supplied by INSERT, i.e. everything but the identity."""
        return self.columns[1:]

    def index_of(self, name: str) -> int | None:
        """Position of a column, or None when the table has no such column."""
        return self._positions.get(name)

    def __len__(self) -> int:
        return len(self.columns)


@dataclass
class Row:
    """A row of data returned by a scan or projection."""

    columns: list[str]
    values: list[str]

    def __repr__(self) -> str:
        pairs = ", ".join(f"{c}={v!r}" for c, v in zip(self.columns, self.values))
        return f"Row({pairs})"
