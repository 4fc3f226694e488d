"""Command Interpreter - executes parsed commands against the catalog.

The interpreter is stateless between calls. Everything a connection
remembers between commands lives in its ``SessionState``, which the caller
owns and passes in with every line.

Failures are raised as ``StoreError`` subclasses; turning them into wire
text is the connection handler's job.

Usage:
    interpreter = CommandInterpreter(catalog)
    session = SessionState(session_id=1)

    interpreter.execute("CREATE DATABASE shop", session)
    interpreter.execute("USE shop", session)
    interpreter.execute("CREATE TABLE t (a, b)", session)
    interpreter.execute("INSERT INTO t VALUES ('x', 'y')", session)
    result = interpreter.execute("SELECT b, a FROM t", session)
    result.rows[0].values  # ['y', 'x']
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from tabstore.adapters.inbound.command_parser import (
    CommandParser,
    CommandPlan,
    CreateDatabasePlan,
    CreateTablePlan,
    InsertPlan,
    SelectPlan,
    UsePlan,
)
from tabstore.application.catalog import Catalog
from tabstore.domain.entities import Row, TableSchema
from tabstore.domain.errors import (
    CommandSyntaxError,
    NoDatabaseSelected,
    NoSuchDatabase,
    StoreError,
    UnknownColumn,
)
from tabstore.infrastructure.logging import get_logger
from tabstore.infrastructure.metrics import MetricsRegistry, get_metrics
from tabstore.infrastructure.tracing import trace_span


logger = get_logger(__name__)


@dataclass
class SessionState:
    """State for one client connection."""

    session_id: int
    database: str | None = None


@dataclass
class ExecutionResult:
    """Result of a successful command.

    Queries carry rows; every other command carries a status message.
    """

    message: str = ""
    rows: list[Row] = field(default_factory=list)
    columns: list[str] = field(default_factory=list)
    affected_rows: int = 0
    row_id: int | None = None
    is_query: bool = False


class CommandInterpreter:
    """Parses and executes command lines.

    Thread Safety:
        One interpreter is shared by all connections. It holds no
        per-session state; synchronization is delegated to the catalog.
    """

    def __init__(
        self,
        catalog: Catalog,
        parser: CommandParser | None = None,
        strict_columns: bool = False,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        """Initialize the interpreter.

        Args:
            catalog: The shared catalog.
            parser: Command parser (default parser if None).
            strict_columns: Raise UnknownColumn for unknown projected
                columns instead of silently dropping them.
            metrics: Metrics registry (global one if None).
        """
        self._catalog = catalog
        self._parser = parser or CommandParser()
        self._strict_columns = strict_columns
        self._metrics = metrics or get_metrics()

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    def execute(self, line: str, session: SessionState) -> ExecutionResult:
        """Parse and execute one command line.

        Args:
            line: The raw command text.
            session: State of the issuing connection. ``USE`` updates it.

        Returns:
            ExecutionResult describing the success.

        Raises:
            StoreError: Any failure, already classified.
        """
        start = time.perf_counter()
        verb = "invalid"
        try:
            plan = self._parser.parse(line)
            verb = plan.statement_type.value
            with trace_span(
                f"command.{verb}",
                {"session.id": session.session_id, "session.database": session.database or ""},
            ):
                result = self._dispatch(plan, session)
        except StoreError:
            self._metrics.commands_total.labels(verb=verb, status="error").inc()
            raise

        self._metrics.commands_total.labels(verb=verb, status="ok").inc()
        self._metrics.command_latency_seconds.labels(verb=verb).observe(
            time.perf_counter() - start
        )
        return result

    def _dispatch(self, plan: CommandPlan, session: SessionState) -> ExecutionResult:
        if isinstance(plan, SelectPlan):
            return self._execute_select(plan, session)
        elif isinstance(plan, InsertPlan):
            return self._execute_insert(plan, session)
        elif isinstance(plan, UsePlan):
            return self._execute_use(plan, session)
        elif isinstance(plan, CreateTablePlan):
            return self._execute_create_table(plan, session)
        elif isinstance(plan, CreateDatabasePlan):
            return self._execute_create_database(plan)
        raise CommandSyntaxError(f"Unsupported command: {type(plan).__name__}")

    def _require_database(self, session: SessionState) -> str:
        if session.database is None:
            raise NoDatabaseSelected("No database selected")
        return session.database

    def _execute_create_database(self, plan: CreateDatabasePlan) -> ExecutionResult:
        self._catalog.create_database(plan.database)
        return ExecutionResult(message=f"Database {plan.database} created")

    def _execute_create_table(
        self, plan: CreateTablePlan, session: SessionState
    ) -> ExecutionResult:
        database = self._require_database(session)
        self._catalog.create_table(database, plan.table, plan.columns)
        return ExecutionResult(message=f"Table {plan.table} created")

    def _execute_use(self, plan: UsePlan, session: SessionState) -> ExecutionResult:
        if not self._catalog.has_database(plan.database):
            raise NoSuchDatabase(f"Database {plan.database} not found")
        session.database = plan.database
        return ExecutionResult(message=f"Using {plan.database}")

    def _execute_insert(self, plan: InsertPlan, session: SessionState) -> ExecutionResult:
        database = self._require_database(session)
        entry = self._catalog.resolve_table(database, plan.table)

        expected = len(entry.schema.value_columns)
        if len(plan.values) != expected:
            raise CommandSyntaxError(
                f"Table {plan.table} expects {expected} values, got {len(plan.values)}"
            )

        row_id = self._catalog.insert_row(database, plan.table, plan.values)
        return ExecutionResult(
            message=f"Data inserted into table {plan.table}",
            affected_rows=1,
            row_id=row_id,
        )

    def _execute_select(self, plan: SelectPlan, session: SessionState) -> ExecutionResult:
        database = self._require_database(session)
        schema, scan = self._catalog.scan(database, plan.table)

        if plan.ignored:
            logger.debug("select_clause_ignored", table=plan.table, clause=plan.ignored)

        columns, positions = self._projection(schema, plan)
        rows: list[Row] = []
        if positions:
            for cells in scan:
                values = [cells[i] if i < len(cells) else "" for i in positions]
                rows.append(Row(columns=columns, values=values))

        self._metrics.rows_returned_total.inc(len(rows))
        return ExecutionResult(rows=rows, columns=columns, is_query=True)

    def _projection(
        self, schema: TableSchema, plan: SelectPlan
    ) -> tuple[list[str], list[int]]:
        """Resolve the requested columns to header positions.

        Unknown names are dropped (or rejected in strict mode); the
        remaining columns keep the order in which they were requested.
        """
        if plan.columns is None:
            return list(schema.columns), list(range(len(schema)))

        columns: list[str] = []
        positions: list[int] = []
        for name in plan.columns:
            idx = schema.index_of(name)
            if idx is None:
                if self._strict_columns:
                    raise UnknownColumn(f"Column {name} does not exist in table {plan.table}")
                logger.debug("unknown_column_dropped", table=plan.table, column=name)
                continue
            columns.append(name)
            positions.append(idx)
        return columns, positions
