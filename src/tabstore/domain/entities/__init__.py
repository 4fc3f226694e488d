"""Domain entities.

Exports:
    - TableSchema: Ordered column names with positional lookup
    - Row: A row of cell values with named access
"""

from tabstore.domain.entities.table import Row, TableSchema

__all__ = [
    "Row",
    "TableSchema",
]
