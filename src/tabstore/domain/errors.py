"""Error taxonomy for the table store.

Every failure a client can observe is a ``StoreError`` subclass. Errors are
raised where they are detected and only turned into ``[ERROR] <reason>``
text by the connection handler, the outermost boundary.

Each class carries a ``kind`` tag that names the failure category
independently of the human-readable message.
"""

from __future__ import annotations


class StoreError(Exception):
    """Base class for all table store failures."""

    kind = "StoreError"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class CommandSyntaxError(StoreError):
    """Command does not match the expected shape for its verb."""

    kind = "SyntaxError"


class UnknownCommand(StoreError):
    """Command verb is not recognized."""

    kind = "UnknownCommand"


class NoSuchDatabase(StoreError):
    """Database name could not be resolved."""

    kind = "NoSuchDatabase"


class NoSuchTable(StoreError):
    """Table name could not be resolved within the selected database."""

    kind = "NoSuchTable"


class AlreadyExists(StoreError):
    """CREATE issued for a name that is already in use."""

    kind = "AlreadyExists"


class NoDatabaseSelected(StoreError):
    """A command needing a database was issued before USE."""

    kind = "NoDatabaseSelected"


class UnknownColumn(StoreError):
    """Projection references a column absent from the table header.

    Only raised when strict projection is enabled; by default unknown
    columns are dropped from the output.
    """

    kind = "UnknownColumn"


class IOFailure(StoreError):
    """Underlying storage read or write failed."""

    kind = "IOFailure"


class MalformedTable(StoreError):
    """Table file has a missing or invalid header line."""

    kind = "MalformedTable"


class UnknownTable(StoreError):
    """Identity requested for a table the catalog never registered.

    Callers validate table existence first, so this signals a
    programming error rather than bad client input.
    """

    kind = "UnknownTable"
