"""Core identifiers for the table store.

These value objects give type-safe names to the integers and name pairs
used throughout the system so that a row identity is never confused with
an arbitrary count, and a table is always addressed together with the
database that owns it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import NewType


RowId = NewType("RowId", int)
"""Identity of a row within its table. Positive and strictly increasing."""

FIRST_ROW_ID = RowId(1)
"""Identity handed out to the first row of an empty table."""

IDENTITY_COLUMN = "id"
"""Name of the implicit identity column, always first in the header."""

TABLE_FILE_SUFFIX = ".tsv"

# Names become path components and header cells
NAME_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+$")


def is_valid_name(name: str) -> bool:
    """Check whether a database, table or column name is acceptable."""
    return bool(NAME_PATTERN.match(name))


@dataclass(frozen=True, slots=True)
class TableRef:
    """Fully qualified table name: owning database plus table name.

    Used as the key for identity allocators and per-table locks.

    Example:
        >>> ref = TableRef("shop", "orders")
        >>> str(ref)
        'shop.orders'
        >>> ref.file_name
        'orders.tsv'
    """

    database: str
    table: str

    def __str__(self) -> str:
        return f"{self.database}.{self.table}"

    @property
    def file_name(self) -> str:
        """Name of the file backing this table."""
        return f"{self.table}{TABLE_FILE_SUFFIX}"
