"""Identity allocation for table rows.

Every table owns one allocator holding the identity the next inserted row
will receive. The allocator is recovered at startup from the largest
identity already stored, so identities keep increasing across restarts and
are never reused.

Two ways to consume identities:

    - ``next_id()`` takes the current value and advances in one atomic
      step. Two concurrent callers never observe the same value.
    - ``current()`` followed by ``advance_past()`` splits the step so that
      the counter moves only after the row has been durably written. The
      caller must hold the table lock across both calls.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from tabstore.domain.value_objects import FIRST_ROW_ID, RowId
from tabstore.infrastructure.logging import get_logger

if TYPE_CHECKING:
    from tabstore.ports.outbound import TableStorage


logger = get_logger(__name__)


class IdentityAllocator:
    """Monotonic per-table identity counter.

    Thread Safety:
        All methods are thread-safe. ``current()`` and ``advance_past()``
        are individually atomic; making the pair atomic is the caller's job.
    """

    def __init__(self, next_id: RowId = FIRST_ROW_ID) -> None:
        """Initialize the allocator.

        Args:
            next_id: Identity handed to the next inserted row.
        """
        if next_id < FIRST_ROW_ID:
            raise ValueError(f"next_id must be >= {FIRST_ROW_ID}, got {next_id}")
        self._next = next_id
        self._lock = threading.Lock()

    @classmethod
    def from_rows(cls, rows: Iterable[list[str]], table: str = "") -> IdentityAllocator:
        """Build an allocator positioned after the largest identity in ``rows``.

        Rows whose first cell is not an integer are logged and counted as
        identity 0 rather than aborting recovery.

        Args:
            rows: Decoded data rows, identity in the first cell.
            table: Table name, used only for log context.
        """
        max_id = 0
        for cells in rows:
            try:
                row_id = int(cells[0])
            except (ValueError, IndexError):
                logger.warning(
                    "invalid_row_identity",
                    table=table,
                    value=cells[0] if cells else None,
                )
                row_id = 0
            max_id = max(max_id, row_id)
        return cls(next_id=RowId(max_id + 1))

    @classmethod
    def recover(cls, storage: TableStorage, table_path: Path) -> IdentityAllocator:
        """Recover the allocator of an existing table file.

        Raises:
            IOFailure: If the table cannot be read.
        """
        allocator = cls.from_rows(storage.scan_rows(table_path), table=table_path.stem)
        logger.debug("identity_recovered", table=table_path.stem, next_id=allocator.current())
        return allocator

    def current(self) -> RowId:
        """Identity the next inserted row will receive."""
        with self._lock:
            return self._next

    def next_id(self) -> RowId:
        """Return the current identity and advance the counter by one."""
        with self._lock:
            row_id = self._next
            self._next = RowId(row_id + 1)
            return row_id

    def advance_past(self, row_id: RowId) -> None:
        """Mark ``row_id`` as consumed after a successful write.

        Raises:
            ValueError: If ``row_id`` is not the current identity, which
                means the caller did not hold the table lock.
        """
        with self._lock:
            if row_id != self._next:
                raise ValueError(
                    f"Identity {row_id} is not the current identity {self._next}"
                )
            self._next = RowId(row_id + 1)

    def __repr__(self) -> str:
        return f"IdentityAllocator(next={self._next})"
