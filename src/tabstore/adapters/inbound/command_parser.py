"""Command parser for the line protocol.

This module turns one line of client text into a command plan. Parsing is
deliberately loose: statements are split on literal keywords rather than
tokenized, so the grammar stays exactly as small as the protocol.

Supported statements:
    - CREATE DATABASE <name>
    - CREATE TABLE <name> (<col1>, <col2>, ...)
    - USE <name>
    - INSERT INTO <table> VALUES (<v1>, <v2>, ...)
    - SELECT <* | col1, col2, ...> FROM <table> [ignored...]

Known limitations:
    - INSERT splits on the literal substrings ``INTO`` and ``VALUES``, and
      SELECT on ``FROM`` (all case-sensitive). A table name or value that
      contains one of these substrings produces a syntax error.
    - Values cannot contain commas, parentheses or quotes; quotes and
      parentheses are stripped, commas always separate values.
    - Everything after the table name in SELECT is ignored (no WHERE).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, ClassVar

from tabstore.domain.errors import CommandSyntaxError, UnknownCommand


class StatementType(Enum):
    """Types of commands."""

    CREATE_DATABASE = "create_database"
    CREATE_TABLE = "create_table"
    USE = "use"
    INSERT = "insert"
    SELECT = "select"


# Command Plans


@dataclass
class CommandPlan:
    """Base class for parsed commands."""

    statement_type: ClassVar[StatementType]


@dataclass
class CreateDatabasePlan(CommandPlan):
    """Create a new database."""

    statement_type: ClassVar[StatementType] = StatementType.CREATE_DATABASE

    database: str

    def __str__(self) -> str:
        return f"CreateDatabase({self.database})"


@dataclass
class CreateTablePlan(CommandPlan):
    """Create a new table in the selected database."""

    statement_type: ClassVar[StatementType] = StatementType.CREATE_TABLE

    table: str
    columns: list[str]

    def __str__(self) -> str:
        return f"CreateTable({self.table}, {self.columns})"


@dataclass
class UsePlan(CommandPlan):
    """Select the database for the rest of the session."""

    statement_type: ClassVar[StatementType] = StatementType.USE

    database: str

    def __str__(self) -> str:
        return f"Use({self.database})"


@dataclass
class InsertPlan(CommandPlan):
    """Append one row to a table."""

    statement_type: ClassVar[StatementType] = StatementType.INSERT

    table: str
    values: list[str]

    def __str__(self) -> str:
        return f"Insert({self.table}, values={len(self.values)})"


@dataclass
class SelectPlan(CommandPlan):
    """Scan a table and project columns.

    ``columns`` is None for ``SELECT *``.
    """

    statement_type: ClassVar[StatementType] = StatementType.SELECT

    table: str
    columns: list[str] | None = None
    ignored: str = ""

    def __str__(self) -> str:
        cols = "*" if self.columns is None else ", ".join(self.columns)
        return f"Select({cols})\n  -> Scan({self.table})"


_INSERT_KEYWORDS = re.compile(r"INTO|VALUES")
_VALUE_DECORATIONS = re.compile(r"[()'\"]")


def _strip_terminator(text: str) -> str:
    """Remove surrounding whitespace and trailing statement terminators."""
    return text.strip().rstrip(";").strip()


def _single_name(text: str, what: str) -> str:
    """Return ``text`` as a single bare name or raise a syntax error."""
    name = _strip_terminator(text)
    if not name or len(name.split()) != 1:
        raise CommandSyntaxError(f"Invalid {what} name")
    return name


class CommandParser:
    """Parser for single-line commands.

    Example:
        >>> parser = CommandParser()
        >>> parser.parse("SELECT b, a FROM t")
        SelectPlan(table='t', columns=['b', 'a'], ignored='')
    """

    def __init__(self) -> None:
        self._handlers: dict[str, Callable[[str], CommandPlan]] = {
            "CREATE": self._parse_create,
            "USE": self._parse_use,
            "INSERT": self._parse_insert,
            "SELECT": self._parse_select,
        }

    @property
    def verbs(self) -> list[str]:
        return list(self._handlers)

    def parse(self, line: str) -> CommandPlan:
        """Parse one command line into a plan.

        The verb is matched case-insensitively; keywords inside a
        statement are matched as written above.

        Raises:
            UnknownCommand: If the verb is not recognized.
            CommandSyntaxError: If the statement is malformed.
        """
        text = line.strip()
        if not text:
            raise CommandSyntaxError("Empty command")

        verb, _, remainder = text.partition(" ")
        handler = self._handlers.get(verb.upper())
        if handler is None:
            raise UnknownCommand(f"Unknown command {verb}")

        remainder = remainder.strip()
        if not _strip_terminator(remainder):
            raise CommandSyntaxError("Invalid command")

        return handler(remainder)

    def _parse_create(self, remainder: str) -> CommandPlan:
        body = _strip_terminator(remainder)
        kind, _, rest = body.partition(" ")

        if kind.upper() == "DATABASE":
            return CreateDatabasePlan(database=_single_name(rest, "database"))
        if kind.upper() == "TABLE":
            return self._parse_create_table(rest)
        raise CommandSyntaxError("Invalid CREATE command")

    def _parse_create_table(self, rest: str) -> CreateTablePlan:
        name, paren, column_list = rest.partition("(")
        name = name.strip()
        column_list = column_list.strip()

        if not paren or not name or len(name.split()) != 1 or not column_list.endswith(")"):
            raise CommandSyntaxError("Invalid CREATE TABLE syntax")

        columns = [c.strip() for c in column_list[:-1].split(",")]
        if any(not c for c in columns):
            raise CommandSyntaxError("Empty column name in CREATE TABLE")

        return CreateTablePlan(table=name, columns=columns)

    def _parse_use(self, remainder: str) -> UsePlan:
        return UsePlan(database=_single_name(remainder, "database"))

    def _parse_insert(self, remainder: str) -> InsertPlan:
        parts = _INSERT_KEYWORDS.split(remainder)
        if len(parts) != 3 or parts[0].strip():
            raise CommandSyntaxError("Invalid INSERT syntax")

        table = parts[1].strip()
        if not table or len(table.split()) != 1:
            raise CommandSyntaxError("Invalid INSERT syntax")

        value_list = _VALUE_DECORATIONS.sub("", _strip_terminator(parts[2]))
        values = [v.strip() for v in value_list.split(",")]
        if any("\t" in v for v in values):
            raise CommandSyntaxError("Values must not contain tab characters")

        return InsertPlan(table=table, values=values)

    def _parse_select(self, remainder: str) -> SelectPlan:
        parts = remainder.split("FROM")
        if len(parts) != 2:
            raise CommandSyntaxError("Invalid SELECT syntax")

        projection = parts[0].strip()
        target = _strip_terminator(parts[1]).split(None, 1)
        if not projection or not target:
            raise CommandSyntaxError("Invalid SELECT syntax")

        table = target[0].rstrip(";")
        ignored = target[1] if len(target) > 1 else ""

        if projection == "*":
            return SelectPlan(table=table, columns=None, ignored=ignored)

        columns = [c.strip() for c in projection.split(",")]
        if any(not c for c in columns):
            raise CommandSyntaxError("Empty column name in SELECT")

        return SelectPlan(table=table, columns=columns, ignored=ignored)
