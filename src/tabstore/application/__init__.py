"""Application layer for the table store.

The application layer orchestrates domain logic to fulfill commands.

Exports:
    Catalog:
        - Catalog: Registry of databases and tables, startup recovery
        - TableEntry: Catalog record for one table
    Interpreter:
        - CommandInterpreter: Parses and executes command lines
        - ExecutionResult: Result of a successful command
        - SessionState: Per-connection state (selected database)
"""

from tabstore.application.catalog import Catalog, TableEntry
from tabstore.application.interpreter import (
    CommandInterpreter,
    ExecutionResult,
    SessionState,
)

__all__ = [
    "Catalog",
    "TableEntry",
    "CommandInterpreter",
    "ExecutionResult",
    "SessionState",
]
