"""Catalog - name resolution and startup recovery.

The catalog is the in-memory index of every known database and table. It
maps database names to directories and table names to their file,
schema and identity allocator, and it is the only component that mutates
those maps.

Usage:
    from tabstore.adapters.outbound import TsvTableStorage
    from tabstore.application import Catalog

    catalog = Catalog.bootstrap(Path("./data"), TsvTableStorage())
    catalog.create_database("shop")
    catalog.create_table("shop", "orders", ["item", "qty"])
    row_id = catalog.insert_row("shop", "orders", ["apple", "3"])

Thread Safety:
    One catalog is shared by every connection. Lookups are plain dict
    reads and never block. CREATE DATABASE / CREATE TABLE are serialized
    by the catalog lock. INSERTs are serialized per table by the lock
    manager.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Sequence

from tabstore.domain.entities import TableSchema
from tabstore.domain.errors import (
    AlreadyExists,
    CommandSyntaxError,
    NoSuchDatabase,
    NoSuchTable,
    StoreError,
    UnknownTable,
)
from tabstore.domain.services import IdentityAllocator, LockManager
from tabstore.domain.value_objects import (
    IDENTITY_COLUMN,
    RowId,
    TableRef,
    is_valid_name,
)
from tabstore.infrastructure.logging import get_logger
from tabstore.infrastructure.metrics import MetricsRegistry, get_metrics
from tabstore.ports.outbound import TableStorage


logger = get_logger(__name__)


@dataclass
class TableEntry:
    """Catalog record for one table."""

    ref: TableRef
    path: Path
    schema: TableSchema
    allocator: IdentityAllocator


class Catalog:
    """Registry of databases and tables backed by a storage root.

    Attributes:
        root: Directory holding one subdirectory per database.
    """

    def __init__(
        self,
        root: str | Path,
        storage: TableStorage,
        lock_manager: LockManager | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        """Initialize an empty catalog.

        Use ``Catalog.bootstrap`` to also load what is already on disk.

        Args:
            root: Storage root directory. Created if missing.
            storage: Table file implementation.
            lock_manager: Per-table lock manager (a fresh one if None).
            metrics: Metrics registry (global one if None).
        """
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)
        self._storage = storage
        self._metrics = metrics or get_metrics()
        self._lock_manager = lock_manager or LockManager(metrics=self._metrics)

        self._catalog_lock = threading.Lock()
        self._databases: Dict[str, Path] = {}
        self._tables: Dict[TableRef, TableEntry] = {}

    @classmethod
    def bootstrap(
        cls,
        root: str | Path,
        storage: TableStorage,
        lock_manager: LockManager | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> Catalog:
        """Build a catalog from the storage tree under ``root``.

        Every directory directly under the root becomes a database and
        every table file inside becomes a table with a recovered identity
        allocator. A table that cannot be read is logged and skipped; it
        does not abort the bootstrap.
        """
        catalog = cls(root, storage, lock_manager=lock_manager, metrics=metrics)
        catalog._load()
        return catalog

    @property
    def root(self) -> Path:
        return self._root

    @property
    def lock_manager(self) -> LockManager:
        return self._lock_manager

    def _load(self) -> None:
        logger.info("loading_databases", root=str(self._root))

        for database_path in self._storage.list_databases(self._root):
            database = database_path.name
            self._databases[database] = database_path

            try:
                table_paths = self._storage.list_tables(database_path)
            except OSError as e:
                logger.error("database_tables_unreadable", database=database, error=str(e))
                continue

            for table_path in table_paths:
                ref = TableRef(database, table_path.stem)
                try:
                    entry = TableEntry(
                        ref=ref,
                        path=table_path,
                        schema=self._storage.read_schema(table_path),
                        allocator=IdentityAllocator.recover(self._storage, table_path),
                    )
                except StoreError as e:
                    logger.error("table_skipped", table=str(ref), kind=e.kind, error=e.reason)
                    self._metrics.tables_skipped_total.inc()
                    continue
                self._tables[ref] = entry

        self._metrics.tables_registered.set(len(self._tables))
        logger.info(
            "databases_loaded",
            databases=len(self._databases),
            tables=len(self._tables),
        )

    # Lookups

    def has_database(self, name: str) -> bool:
        return name in self._databases

    def databases(self) -> list[str]:
        return sorted(self._databases)

    def tables(self, database: str) -> list[str]:
        """Names of the tables registered in ``database``.

        Raises:
            NoSuchDatabase: If the database is unknown.
        """
        if database not in self._databases:
            raise NoSuchDatabase(f"Database {database} not found")
        return sorted(ref.table for ref in list(self._tables) if ref.database == database)

    def resolve_table(self, database: str, name: str) -> TableEntry:
        """Look up a table.

        Raises:
            NoSuchDatabase: If the database is unknown.
            NoSuchTable: If the database has no such table.
        """
        if database not in self._databases:
            raise NoSuchDatabase(f"Database {database} not found")
        entry = self._tables.get(TableRef(database, name))
        if entry is None:
            raise NoSuchTable(f"Table {name} does not exist")
        return entry

    # Mutations

    def create_database(self, name: str) -> Path:
        """Create and register a database directory.

        Raises:
            CommandSyntaxError: If the name is not a valid identifier.
            AlreadyExists: If the name is already in use.
            IOFailure: If the directory cannot be created.
        """
        if not is_valid_name(name):
            raise CommandSyntaxError(f"Invalid database name '{name}'")

        with self._catalog_lock:
            if name in self._databases:
                raise AlreadyExists(f"Database {name} already exists")

            database_path = self._root / name
            self._storage.create_database_dir(database_path)
            self._databases[name] = database_path

        logger.info("database_created", database=name)
        return database_path

    def create_table(self, database: str, name: str, columns: Sequence[str]) -> TableEntry:
        """Create and register a table with the given user columns.

        The identity column is added implicitly and must not be listed.

        Raises:
            NoSuchDatabase: If the database is unknown.
            CommandSyntaxError: If a name is invalid or columns repeat.
            AlreadyExists: If the table already exists.
            IOFailure: If the file cannot be written.
        """
        if database not in self._databases:
            raise NoSuchDatabase(f"Database {database} not found")
        if not is_valid_name(name):
            raise CommandSyntaxError(f"Invalid table name '{name}'")
        _validate_columns(columns)

        ref = TableRef(database, name)
        schema = TableSchema.for_new_table(columns)

        with self._catalog_lock:
            if ref in self._tables:
                raise AlreadyExists(f"Table {name} already exists")

            table_path = self._databases[database] / ref.file_name
            self._storage.create_table_file(table_path, schema)
            entry = TableEntry(
                ref=ref,
                path=table_path,
                schema=schema,
                allocator=IdentityAllocator(),
            )
            self._tables[ref] = entry
            self._metrics.tables_registered.set(len(self._tables))

        logger.info("table_created", table=str(ref), columns=list(schema.columns))
        return entry

    def next_id(self, database: str, table: str) -> RowId:
        """Consume the next identity of a registered table.

        Raises:
            UnknownTable: If the catalog has no allocator for the table.
        """
        entry = self._tables.get(TableRef(database, table))
        if entry is None:
            raise UnknownTable(f"No identity allocator for table {database}.{table}")
        return entry.allocator.next_id()

    def insert_row(self, database: str, table: str, values: Sequence[str]) -> RowId:
        """Append a row and return the identity it was given.

        The identity is read, the row appended and the identity advanced
        under the table lock. A failed append leaves the identity unused.

        Raises:
            NoSuchDatabase / NoSuchTable: If the table cannot be resolved.
            IOFailure: If the append fails.
        """
        entry = self.resolve_table(database, table)

        with self._lock_manager.hold(entry.ref):
            row_id = entry.allocator.current()
            self._storage.append_row(entry.path, row_id, values)
            entry.allocator.advance_past(row_id)

        self._metrics.rows_inserted_total.inc()
        return row_id

    def scan(self, database: str, table: str) -> tuple[TableSchema, Iterable[list[str]]]:
        """Return the schema and a lazy row scan of a table.

        Raises:
            NoSuchDatabase / NoSuchTable: If the table cannot be resolved.
        """
        entry = self.resolve_table(database, table)
        return entry.schema, self._storage.scan_rows(entry.path)


def _validate_columns(columns: Sequence[str]) -> None:
    if not columns:
        raise CommandSyntaxError("A table needs at least one column")

    seen: set[str] = set()
    for column in columns:
        if not is_valid_name(column):
            raise CommandSyntaxError(f"Invalid column name '{column}'")
        if column == IDENTITY_COLUMN:
            raise CommandSyntaxError(f"Column '{IDENTITY_COLUMN}' is added implicitly")
        if column in seen:
            raise CommandSyntaxError(f"Duplicate column '{column}'")
        seen.add(column)
