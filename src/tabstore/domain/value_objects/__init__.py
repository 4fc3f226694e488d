"""Value objects for the table store domain.

Exports:
    Identifiers:
        - RowId: Type-safe row identity
        - TableRef: (database, table) pair addressing one table
        - FIRST_ROW_ID, IDENTITY_COLUMN, TABLE_FILE_SUFFIX: Constants
        - is_valid_name: Name validation for path-safe identifiers
"""

from tabstore.domain.value_objects.identifiers import (
    FIRST_ROW_ID,
    IDENTITY_COLUMN,
    TABLE_FILE_SUFFIX,
    RowId,
    TableRef,
    is_valid_name,
)

__all__ = [
    "RowId",
    "TableRef",
    "FIRST_ROW_ID",
    "IDENTITY_COLUMN",
    "TABLE_FILE_SUFFIX",
    "is_valid_name",
]
