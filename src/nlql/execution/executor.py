from __future__ import annotations

import threading
import time
from typing import Any, Callable, List, Optional, Tuple

from sqlalchemy.engine import Connection, CursorResult
from sqlalchemy.exc import (
    DBAPIError,
    DisconnectionError,
    IntegrityError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)

from nlql.common.cancellation import RequestDeadline
from nlql.common.errors import ExecutionError, ExecutionErrorKind
from nlql.common.logger import get_logger
from nlql.datasources.database import Database
from nlql.validation.models import EXECUTABLE_CATEGORIES, StatementCategory, StatementClassification
from .contracts import ExecutionResult

logger = get_logger("executor")

_TIMEOUT_MESSAGES = (
    "statement timeout",
    "maximum statement execution time exceeded",
    "canceling statement due to user request",
    "interrupted",
)


def strip_statement(sql: str) -> str:
    """Removes surrounding whitespace and trailing semicolons."""
    statement = sql.strip()
    while statement.endswith(";"):
        statement = statement[:-1].rstrip()
    return statement


class _Interrupter:
    """Cancels the in-flight statement on a connection once the timeout elapses.

    SQLite and PostgreSQL drivers cancel through the DBAPI connection
    (``interrupt()`` / ``cancel()``). MySQL drivers have no such call, so the
    running query is killed with ``KILL QUERY`` from a second pooled connection.
    """

    def __init__(self, timeout_sec: Optional[float], database: Database):
        self.timeout_sec = timeout_sec
        self.database = database
        self.fired = False
        self._timer: Optional[threading.Timer] = None

    def arm(self, conn: Connection) -> None:
        if self.timeout_sec is None:
            return
        cancel = self._canceller(conn.connection.dbapi_connection)
        if cancel is None:
            logger.warning(f"Statements on {self.database.dialect} cannot be cancelled, relying on server timeouts")
            return
        self._timer = threading.Timer(self.timeout_sec, self._fire, args=(cancel,))
        self._timer.daemon = True
        self._timer.start()

    def _canceller(self, dbapi_conn: Any) -> Optional[Callable[[], None]]:
        if self.database.dialect in ("mysql", "mariadb"):
            thread_id = getattr(dbapi_conn, "thread_id", None)
            if thread_id is None:
                return None
            connection_id = int(thread_id())
            return lambda: self._kill_query(connection_id)
        return getattr(dbapi_conn, "interrupt", None) or getattr(dbapi_conn, "cancel", None)

    def _kill_query(self, connection_id: int) -> None:
        with self.database.connect() as killer:
            killer.exec_driver_sql(f"KILL QUERY {connection_id}")

    def _fire(self, cancel: Callable[[], None]) -> None:
        self.fired = True
        logger.warning(f"Statement exceeded {self.timeout_sec:.2f}s, cancelling")
        try:
            cancel()
        except Exception as e:
            logger.error(f"Failed to cancel running statement: {e}")

    def disarm(self) -> None:
        if self._timer is not None:
            self._timer.cancel()


class QueryExecutor:
    """Runs permitted statements against the pooled database.

    Read-only statements run in a read-only transaction where the dialect
    supports one and are streamed up to ``row_limit`` rows. Mutating and
    schema-changing statements run inside a transaction that commits on
    success and rolls back on any error. Every statement is bounded by the
    statement timeout (and the request deadline, when given). Failures are
    never retried.
    """

    def __init__(
        self,
        database: Database,
        row_limit: int = 1000,
        statement_timeout_ms: int = 30000,
        fetch_size: int = 500,
    ):
        self.database = database
        self.row_limit = row_limit
        self.statement_timeout_ms = statement_timeout_ms
        self.fetch_size = fetch_size

    def execute(
        self,
        sql: str,
        classification: Optional[StatementClassification],
        deadline: Optional[RequestDeadline] = None,
    ) -> ExecutionResult:
        """Executes ``sql`` according to its classification.

        Args:
            sql (str): The validated statement.
            classification (StatementClassification): Validator output for ``sql``.
            deadline (Optional[RequestDeadline]): Request deadline bounding the statement timeout.

        Returns:
            ExecutionResult: Rows for reads, affected row count for writes.

        Raises:
            ValueError: If the statement was not classified as executable.
            ExecutionError: If the database fails, times out or drops the connection.
        """
        if classification is None or classification.category not in EXECUTABLE_CATEGORIES:
            category = classification.category.value if classification else "unclassified"
            raise ValueError(f"refusing to execute a {category} statement")

        statement = strip_statement(sql)
        timeout_sec = self.statement_timeout_ms / 1000.0
        if deadline is not None:
            timeout_sec = deadline.bound(timeout_sec)
        if timeout_sec is not None and timeout_sec <= 0:
            raise ExecutionError(ExecutionErrorKind.TIMEOUT, "request deadline exceeded before execution started")

        read_only = classification.category == StatementCategory.READ_ONLY
        interrupter = _Interrupter(timeout_sec, self.database)
        started = time.perf_counter()
        try:
            with self.database.connect() as conn:
                interrupter.arm(conn)
                try:
                    if read_only:
                        columns, rows, truncated = self._run_read(conn, statement, timeout_sec)
                        row_count = len(rows)
                        returns_rows = True
                    else:
                        columns, rows, truncated, row_count, returns_rows = self._run_write(
                            conn, statement, timeout_sec
                        )
                finally:
                    interrupter.disarm()
                    if read_only and self.database.dialect == "sqlite":
                        self._reset_sqlite_query_only(conn)
        except SQLAlchemyError as e:
            error = self._map_error(e, interrupter.fired, timeout_sec)
            logger.error(f"Execution failed ({error.kind}): {error.message}")
            raise error from e

        duration_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"Executed {classification.statement_type} in {duration_ms:.0f}ms "
            f"({row_count} rows{', truncated' if truncated else ''})"
        )
        return ExecutionResult(
            columns=columns,
            rows=rows,
            row_count=row_count,
            duration_ms=duration_ms,
            truncated=truncated,
            returns_rows=returns_rows,
        )

    def _prepare(self, conn: Connection, read_only: bool, timeout_sec: Optional[float]) -> None:
        dialect = self.database.dialect
        timeout_ms = None if timeout_sec is None else max(1, int(timeout_sec * 1000))
        if dialect == "postgresql":
            if read_only:
                conn.exec_driver_sql("SET TRANSACTION READ ONLY")
            if timeout_ms is not None:
                conn.exec_driver_sql(f"SET LOCAL statement_timeout = {timeout_ms}")
        elif dialect in ("mysql", "mariadb"):
            if read_only:
                conn.exec_driver_sql("SET TRANSACTION READ ONLY")
            if timeout_ms is not None:
                conn.exec_driver_sql(f"SET SESSION max_execution_time = {timeout_ms}")
        elif dialect == "sqlite" and read_only:
            conn.exec_driver_sql("PRAGMA query_only = ON")

    def _run_read(
        self, conn: Connection, statement: str, timeout_sec: Optional[float]
    ) -> Tuple[Tuple[str, ...], Tuple[Tuple[Any, ...], ...], bool]:
        with conn.begin():
            self._prepare(conn, read_only=True, timeout_sec=timeout_sec)
            result = conn.execution_options(stream_results=True, no_parameters=True).exec_driver_sql(statement)
            try:
                return self._fetch(result)
            finally:
                result.close()

    def _run_write(self, conn: Connection, statement: str, timeout_sec: Optional[float]):
        with conn.begin():
            self._prepare(conn, read_only=False, timeout_sec=timeout_sec)
            result = conn.execution_options(no_parameters=True).exec_driver_sql(statement)
            if result.returns_rows:
                columns, rows, truncated = self._fetch(result)
                result.close()
                return columns, rows, truncated, len(rows), True
            affected = max(result.rowcount, 0)
            return (), (), False, affected, False

    def _fetch(self, result: CursorResult) -> Tuple[Tuple[str, ...], Tuple[Tuple[Any, ...], ...], bool]:
        columns = tuple(result.keys())
        rows: List[Tuple[Any, ...]] = []
        # One row past the limit tells us whether the result was truncated.
        wanted = self.row_limit + 1
        while len(rows) < wanted:
            batch = result.fetchmany(min(self.fetch_size, wanted - len(rows)))
            if not batch:
                break
            rows.extend(tuple(row) for row in batch)
        truncated = len(rows) > self.row_limit
        return columns, tuple(rows[: self.row_limit]), truncated

    def _reset_sqlite_query_only(self, conn: Connection) -> None:
        if conn.closed or conn.invalidated:
            return
        try:
            conn.exec_driver_sql("PRAGMA query_only = OFF")
            conn.commit()
        except SQLAlchemyError as e:
            logger.warning(f"Could not reset PRAGMA query_only, invalidating connection: {e}")
            conn.invalidate()

    def _map_error(self, error: SQLAlchemyError, interrupted: bool, timeout_sec: Optional[float]) -> ExecutionError:
        detail = str(getattr(error, "orig", None) or error).strip()
        lowered = detail.lower()

        if interrupted or any(m in lowered for m in _TIMEOUT_MESSAGES):
            limit = "the statement timeout" if timeout_sec is None else f"{timeout_sec:.2f}s"
            return ExecutionError(ExecutionErrorKind.TIMEOUT, f"statement cancelled after exceeding {limit}: {detail}")
        if isinstance(error, PoolTimeoutError):
            return ExecutionError(ExecutionErrorKind.TIMEOUT, f"timed out waiting for a pooled connection: {detail}")
        if isinstance(error, IntegrityError):
            return ExecutionError(ExecutionErrorKind.CONSTRAINT_VIOLATION, detail)
        if isinstance(error, DisconnectionError) or (
            isinstance(error, DBAPIError) and error.connection_invalidated
        ):
            return ExecutionError(ExecutionErrorKind.CONNECTION_LOST, detail)
        return ExecutionError(ExecutionErrorKind.OTHER, detail)
