from .contracts import ExecutionResult
from .executor import QueryExecutor, strip_statement

__all__ = ["ExecutionResult", "QueryExecutor", "strip_statement"]
