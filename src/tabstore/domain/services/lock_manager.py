"""Lock Manager for per-table write serialization.

Mutating a table is a three step critical section: read the current
identity, append the row, advance the identity. The lock manager hands out
one exclusive lock per table so that concurrent INSERTs against the same
table are serialized while INSERTs against different tables proceed in
parallel.

Lock Hierarchy:
    Catalog -> Table
    (The catalog lock guards CREATE; table locks guard appends. A table
    lock is never acquired while waiting on client I/O.)

Scans take no lock. A row is visible to every scan started after its
append has returned.
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterator

from tabstore.domain.value_objects import TableRef
from tabstore.infrastructure.metrics import MetricsRegistry


class LockManager:
    """Registry of exclusive per-table locks.

    Locks are created lazily the first time a table is mutated and live as
    long as the manager.

    Thread Safety:
        Lock creation is guarded by a registry lock; holding a table lock
        never requires the registry lock.
    """

    def __init__(self, metrics: MetricsRegistry | None = None) -> None:
        """Initialize the lock manager.

        Args:
            metrics: Optional metrics registry for lock wait times.
        """
        self._registry_lock = threading.Lock()
        self._table_locks: Dict[TableRef, threading.Lock] = {}
        self._metrics = metrics

    def _lock_for(self, table: TableRef) -> threading.Lock:
        with self._registry_lock:
            lock = self._table_locks.get(table)
            if lock is None:
                lock = threading.Lock()
                self._table_locks[table] = lock
            return lock

    @contextmanager
    def hold(self, table: TableRef) -> Iterator[None]:
        """Hold the exclusive lock of ``table`` for the duration of the block.

        Example:
            >>> with lock_manager.hold(TableRef("shop", "orders")):
            ...     row_id = allocator.current()
            ...     storage.append_row(path, row_id, values)
            ...     allocator.advance_past(row_id)
        """
        lock = self._lock_for(table)
        start = time.perf_counter()
        lock.acquire()
        if self._metrics is not None:
            self._metrics.lock_wait_seconds.observe(time.perf_counter() - start)
        try:
            yield
        finally:
            lock.release()

    def is_locked(self, table: TableRef) -> bool:
        """Check whether some thread currently holds the table lock."""
        with self._registry_lock:
            lock = self._table_locks.get(table)
        return lock is not None and lock.locked()

    @property
    def table_count(self) -> int:
        """Number of tables that have had a lock created."""
        with self._registry_lock:
            return len(self._table_locks)
