import sqlite3
from unittest.mock import MagicMock, call

import pytest

from nlql.common.cancellation import RequestDeadline
from nlql.common.errors import ExecutionError, ExecutionErrorKind
from nlql.execution.executor import QueryExecutor, _Interrupter, strip_statement
from nlql.validation.models import StatementCategory, StatementClassification

READ = StatementClassification(category=StatementCategory.READ_ONLY, statement_type="SELECT")
WRITE = StatementClassification(category=StatementCategory.MUTATING, statement_type="UPDATE")
INSERT = StatementClassification(category=StatementCategory.MUTATING, statement_type="INSERT")

ENDLESS = (
    "WITH RECURSIVE counter(x) AS (SELECT 1 UNION ALL SELECT x + 1 FROM counter) "
    "SELECT COUNT(*) FROM counter"
)


def test_strip_statement():
    assert strip_statement("  SELECT 1 ;; \n") == "SELECT 1"
    assert strip_statement("SELECT ';'") == "SELECT ';'"


class TestReads:

    def test_select_returns_columns_and_rows(self, database):
        result = QueryExecutor(database).execute("SELECT id, name, email FROM users ORDER BY id", READ)
        assert result.columns == ("id", "name", "email")
        assert result.row_count == 3
        assert result.rows[1] == (2, "Bob", None)
        assert result.returns_rows
        assert not result.truncated
        assert result.duration_ms >= 0

    def test_trailing_semicolon(self, database):
        result = QueryExecutor(database).execute("SELECT COUNT(*) AS n FROM orders;", READ)
        assert result.columns == ("n",)
        assert result.rows == ((4,),)

    def test_truncated_at_row_limit(self, database):
        result = QueryExecutor(database, row_limit=2, fetch_size=1).execute("SELECT id FROM orders ORDER BY id", READ)
        assert result.rows == ((1,), (2,))
        assert result.row_count == 2
        assert result.truncated

    def test_exact_row_limit_is_not_truncated(self, database):
        result = QueryExecutor(database, row_limit=4).execute("SELECT id FROM orders", READ)
        assert result.row_count == 4
        assert not result.truncated

    def test_empty_result(self, database):
        result = QueryExecutor(database).execute("SELECT * FROM orders WHERE total > 1000", READ)
        assert result.rows == ()
        assert result.columns == ("id", "user_id", "status", "total")

    def test_read_path_cannot_write(self, database, row_count):
        # A write misclassified as read-only still cannot change anything.
        with pytest.raises(ExecutionError):
            QueryExecutor(database).execute("DELETE FROM orders", READ)
        assert row_count("orders") == 4

        result = QueryExecutor(database).execute("UPDATE orders SET total = 1 WHERE id = 1", WRITE)
        assert result.row_count == 1


class TestWrites:

    def test_update_commits(self, database, sqlite_path):
        result = QueryExecutor(database).execute(
            "UPDATE users SET email = 'bob@example.com' WHERE id = 2", WRITE
        )
        assert result.row_count == 1
        assert not result.returns_rows
        assert result.columns == ()

        conn = sqlite3.connect(str(sqlite_path))
        try:
            assert conn.execute("SELECT email FROM users WHERE id = 2").fetchone() == ("bob@example.com",)
        finally:
            conn.close()

    def test_failed_write_rolls_back_earlier_rows(self, database, row_count):
        # OR FAIL keeps the rows written before the failing one, so only the
        # surrounding transaction can remove order 5.
        with pytest.raises(ExecutionError) as exc:
            QueryExecutor(database).execute(
                "INSERT OR FAIL INTO orders VALUES (5, 1, 'pending', 1.0), (1, 1, 'pending', 1.0)", INSERT
            )
        assert exc.value.error_kind == ExecutionErrorKind.CONSTRAINT_VIOLATION
        assert row_count("orders") == 4

    def test_check_constraint(self, database):
        with pytest.raises(ExecutionError) as exc:
            QueryExecutor(database).execute("UPDATE orders SET status = 'lost' WHERE id = 1", WRITE)
        assert exc.value.error_kind == ExecutionErrorKind.CONSTRAINT_VIOLATION

    def test_unknown_table_is_other(self, database):
        with pytest.raises(ExecutionError) as exc:
            QueryExecutor(database).execute("SELECT * FROM missing", READ)
        assert exc.value.error_kind == ExecutionErrorKind.OTHER
        assert "missing" in exc.value.message


class TestTimeouts:

    def test_statement_timeout_cancels(self, database):
        executor = QueryExecutor(database, statement_timeout_ms=200)
        with pytest.raises(ExecutionError) as exc:
            executor.execute(ENDLESS, READ)
        assert exc.value.error_kind == ExecutionErrorKind.TIMEOUT

        # The pooled connection is still usable afterwards.
        assert executor.execute("SELECT 1", READ).rows == ((1,),)

    def test_expired_deadline(self, database):
        with pytest.raises(ExecutionError) as exc:
            QueryExecutor(database).execute("SELECT 1", READ, RequestDeadline(0))
        assert exc.value.error_kind == ExecutionErrorKind.TIMEOUT


class TestMySQL:

    @staticmethod
    def mysql_connection(dbapi_connection):
        conn = MagicMock()
        conn.connection.dbapi_connection = dbapi_connection
        return conn

    def test_timeout_kills_query_from_second_connection(self):
        database = MagicMock(dialect="mysql")
        killer = database.connect.return_value.__enter__.return_value
        # pymysql connections expose thread_id() but no cancel() or interrupt()
        dbapi_connection = MagicMock(spec=["thread_id", "cursor"])
        dbapi_connection.thread_id.return_value = 42

        interrupter = _Interrupter(0.01, database)
        interrupter.arm(self.mysql_connection(dbapi_connection))
        interrupter._timer.join(5)

        assert interrupter.fired
        killer.exec_driver_sql.assert_called_once_with("KILL QUERY 42")

    def test_disarmed_before_timeout_kills_nothing(self):
        database = MagicMock(dialect="mariadb")
        dbapi_connection = MagicMock(spec=["thread_id"])
        dbapi_connection.thread_id.return_value = 7

        interrupter = _Interrupter(30, database)
        interrupter.arm(self.mysql_connection(dbapi_connection))
        interrupter.disarm()

        assert not interrupter.fired
        database.connect.assert_not_called()

    def test_read_runs_in_read_only_transaction(self):
        conn = MagicMock()
        QueryExecutor(MagicMock(dialect="mysql"))._prepare(conn, read_only=True, timeout_sec=1.5)
        assert conn.exec_driver_sql.call_args_list == [
            call("SET TRANSACTION READ ONLY"),
            call("SET SESSION max_execution_time = 1500"),
        ]

    def test_write_is_not_read_only(self):
        conn = MagicMock()
        QueryExecutor(MagicMock(dialect="mysql"))._prepare(conn, read_only=False, timeout_sec=2)
        assert conn.exec_driver_sql.call_args_list == [call("SET SESSION max_execution_time = 2000")]


@pytest.mark.parametrize("classification", [
    None,
    StatementClassification(category=StatementCategory.MULTI_STATEMENT),
    StatementClassification(category=StatementCategory.UNPARSEABLE),
])
def test_refuses_non_executable(database, classification):
    with pytest.raises(ValueError):
        QueryExecutor(database).execute("SELECT 1", classification)
