"""Inbound adapters for the table store.

Inbound adapters handle incoming requests and convert them to
internal operations.

Exports:
    Command Parser:
        - CommandParser: Parser that converts command lines to plans
        - CommandPlan: Base class for all command plans
        - StatementType: Kinds of commands

The TCP server lives in ``tabstore.adapters.inbound.line_server`` and is
imported from there; it depends on the application layer, which in turn
depends on the parser.
"""

from tabstore.adapters.inbound.command_parser import (
    CommandParser,
    CommandPlan,
    CreateDatabasePlan,
    CreateTablePlan,
    InsertPlan,
    SelectPlan,
    StatementType,
    UsePlan,
)

__all__ = [
    "CommandParser",
    "CommandPlan",
    "StatementType",
    "CreateDatabasePlan",
    "CreateTablePlan",
    "UsePlan",
    "InsertPlan",
    "SelectPlan",
]
