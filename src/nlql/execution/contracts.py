"""
Result contract returned by the QueryExecutor.

Rows are tuples positionally aligned with ``columns``. Values are whatever
the DBAPI driver returned; JSON rendering goes through pydantic so dates,
decimals and bytes (base64) serialize without extra handling.
"""
from typing import Any, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ExecutionResult(BaseModel):
    """Outcome of executing one permitted statement."""

    columns: Tuple[str, ...] = Field(default_factory=tuple, description="Result column names, in order.")
    rows: Tuple[Tuple[Any, ...], ...] = Field(default_factory=tuple, description="Fetched rows, at most row_limit.")
    row_count: int = Field(0, description="Rows returned, or rows affected when returns_rows is False.")
    duration_ms: float = Field(0.0, description="Wall time spent in the database.")
    truncated: bool = Field(False, description="True when more rows existed than the row limit.")
    returns_rows: bool = Field(True, description="False for DML/DDL statements without a result set.")

    model_config = ConfigDict(frozen=True, ser_json_bytes="base64")

    @model_validator(mode="after")
    def _rows_match_columns(self) -> "ExecutionResult":
        width = len(self.columns)
        for i, row in enumerate(self.rows):
            if len(row) != width:
                raise ValueError(f"row {i} has {len(row)} values but there are {width} columns")
        return self
