"""Tab-separated table file implementation.

This adapter implements the TableStorage protocol using plain text files.

File Format:
    - Line 1: column names separated by tabs, ``id`` always first
    - Line 2+: one row per line, cells separated by tabs, first cell is the
      row identity as a decimal integer

    Cells are written verbatim. Values containing a tab or a newline are not
    escaped and will corrupt the row they belong to.

Storage Layout:
    <root>/<database>/<table>.tsv

Thread Safety:
    Scans open their own file handle and are safe to run concurrently with
    each other and with appends. Appends to the same table must be
    serialized externally (by the table lock manager).
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator, Sequence

from tabstore.domain.entities import TableSchema
from tabstore.domain.errors import AlreadyExists, IOFailure, MalformedTable
from tabstore.domain.value_objects import IDENTITY_COLUMN, TABLE_FILE_SUFFIX, RowId
from tabstore.infrastructure.config import get_config


DELIMITER = "\t"
LINE_TERMINATOR = "\n"
ENCODING = "utf-8"


class RowScan:
    """Lazy, restartable sequence of data rows of one table file.

    Each iteration opens the file afresh, skips the header line and blank
    lines, and yields the cells of every remaining line.
    """

    def __init__(self, table_path: Path) -> None:
        self._table_path = table_path

    def __iter__(self) -> Iterator[list[str]]:
        try:
            with open(self._table_path, "r", encoding=ENCODING, newline="") as f:
                f.readline()
                for line in f:
                    line = line.rstrip("\r\n")
                    if not line.strip():
                        continue
                    yield line.split(DELIMITER)
        except OSError as e:
            raise IOFailure(f"Error reading table data: {e}") from e
        except UnicodeDecodeError as e:
            raise IOFailure(f"Table data is not valid {ENCODING}: {e}") from e

    def __repr__(self) -> str:
        return f"RowScan({self._table_path})"


class TsvTableStorage:
    """File-based implementation of the TableStorage protocol.

    Attributes:
        sync_mode: ``"fsync"`` to force appended rows to disk before an
            INSERT is acknowledged, ``"none"`` to rely on the OS cache.
    """

    def __init__(self, sync_mode: str | None = None) -> None:
        """Initialize the table storage.

        Args:
            sync_mode: Durability mode for writes (default from config).
        """
        self._sync_mode = sync_mode or get_config().storage.sync_mode

    @property
    def sync_mode(self) -> str:
        return self._sync_mode

    # Codec

    def encode_header(self, columns: Sequence[str]) -> str:
        return DELIMITER.join(columns) + LINE_TERMINATOR

    def decode_header(self, line: str | None) -> TableSchema:
        if line is None:
            raise MalformedTable("Table header is missing")

        line = line.rstrip("\r\n")
        if not line.strip():
            raise MalformedTable("Table header is empty")

        columns = tuple(line.split(DELIMITER))
        if columns[0] != IDENTITY_COLUMN:
            raise MalformedTable(
                f"Table header must start with '{IDENTITY_COLUMN}', got '{columns[0]}'"
            )
        return TableSchema(columns=columns)

    def encode_row(self, row_id: RowId, values: Sequence[str]) -> str:
        return DELIMITER.join([str(row_id), *values]) + LINE_TERMINATOR

    # Table files

    def read_schema(self, table_path: Path) -> TableSchema:
        try:
            with open(table_path, "r", encoding=ENCODING, newline="") as f:
                first = f.readline()
        except OSError as e:
            raise IOFailure(f"Error reading table header: {e}") from e
        except UnicodeDecodeError as e:
            raise MalformedTable(f"Table header is not valid {ENCODING}: {e}") from e

        return self.decode_header(first or None)

    def create_table_file(self, table_path: Path, schema: TableSchema) -> None:
        try:
            with open(table_path, "x", encoding=ENCODING, newline="") as f:
                f.write(self.encode_header(schema.columns))
                self._sync(f)
        except FileExistsError as e:
            raise AlreadyExists(f"Table {table_path.stem} already exists") from e
        except OSError as e:
            raise IOFailure(f"Error creating table: {e}") from e

    def append_row(self, table_path: Path, row_id: RowId, values: Sequence[str]) -> None:
        line = self.encode_row(row_id, values)
        try:
            with open(table_path, "a", encoding=ENCODING, newline="") as f:
                f.write(line)
                self._sync(f)
        except OSError as e:
            raise IOFailure(f"Error writing to table: {e}") from e

    def scan_rows(self, table_path: Path) -> RowScan:
        return RowScan(table_path)

    # Storage tree

    def create_database_dir(self, database_path: Path) -> None:
        try:
            database_path.mkdir(parents=False, exist_ok=False)
        except FileExistsError as e:
            raise AlreadyExists(f"Database {database_path.name} already exists") from e
        except OSError as e:
            raise IOFailure(f"Error creating database: {e}") from e

    def list_databases(self, root: Path) -> list[Path]:
        if not root.is_dir():
            return []
        return sorted(p for p in root.iterdir() if p.is_dir())

    def list_tables(self, database_path: Path) -> list[Path]:
        return sorted(
            p
            for p in database_path.iterdir()
            if p.is_file() and p.suffix == TABLE_FILE_SUFFIX
        )

    def _sync(self, f) -> None:
        """Flush a written file and optionally fsync it."""
        f.flush()
        if self._sync_mode == "fsync":
            os.fsync(f.fileno())
