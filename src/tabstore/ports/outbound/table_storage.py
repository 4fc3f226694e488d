"""Table Storage port for flat-file table I/O.

This outbound port defines the contract for persisting tables. A table is
a header line of column names followed by one line per row; the concrete
encoding belongs to the adapter.

The table storage is responsible for:
- Creating database directories and table files
- Encoding and decoding the header line
- Appending rows and scanning them back
- Enumerating the storage tree at startup
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import Iterable, Protocol, Sequence

from tabstore.domain.entities import TableSchema
from tabstore.domain.value_objects import RowId


class TableStorage(Protocol):
    """Protocol for table file operations.

    The storage has no notion of identity allocation or locking; callers
    serialize mutation of a single table externally.

    Thread Safety:
        Implementations must allow concurrent scans of any table and
        concurrent appends to different tables.
    """

    @abstractmethod
    def encode_header(self, columns: Sequence[str]) -> str:
        """Encode a full column list (identity first) as a header line."""
        ...

    @abstractmethod
    def decode_header(self, line: str | None) -> TableSchema:
        """Decode a header line into a schema.

        Raises:
            MalformedTable: If the line is absent, empty or invalid.
        """
        ...

    @abstractmethod
    def read_schema(self, table_path: Path) -> TableSchema:
        """Read and decode the header of a table file.

        Raises:
            MalformedTable: If the header is missing or invalid.
            IOFailure: If the file cannot be read.
        """
        ...

    @abstractmethod
    def create_table_file(self, table_path: Path, schema: TableSchema) -> None:
        """Create a table file holding only the header line.

        Raises:
            AlreadyExists: If the file already exists.
            IOFailure: If the write fails.
        """
        ...

    @abstractmethod
    def append_row(self, table_path: Path, row_id: RowId, values: Sequence[str]) -> None:
        """Append one row. Not idempotent; callers must not retry blindly.

        Raises:
            IOFailure: If the write fails.
        """
        ...

    @abstractmethod
    def scan_rows(self, table_path: Path) -> Iterable[list[str]]:
        """Return a lazy, restartable iterable over decoded data rows."""
        ...

    @abstractmethod
    def create_database_dir(self, database_path: Path) -> None:
        """Create the directory backing a database.

        Raises:
            AlreadyExists: If the directory already exists.
            IOFailure: If creation fails.
        """
        ...

    @abstractmethod
    def list_databases(self, root: Path) -> list[Path]:
        """List database directories directly under the storage root."""
        ...

    @abstractmethod
    def list_tables(self, database_path: Path) -> list[Path]:
        """List table files inside a database directory."""
        ...
