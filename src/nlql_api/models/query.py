from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from nlql.common.errors import ErrorPayload
from nlql.formatting.formatter import OutputFormat
from nlql.translation.prompt_builder import HistoryTurn


class QueryRequest(BaseModel):
    question: str = Field(..., min_length=1, description="Natural language question.")
    dry_run: bool = Field(False, description="Translate and validate only.")
    output: OutputFormat = Field(OutputFormat.RAW, description="Adds a table rendering when 'table'.")
    allow_mutations: bool = Field(
        False,
        description="Request mutation permission; honoured only if the server allows mutations.",
    )
    history: List[HistoryTurn] = Field(default_factory=list, description="Previous question/SQL pairs.")


class QueryResponse(BaseModel):
    kind: str
    sql: str
    classification: Dict[str, Any]
    rejected_reason: Optional[str] = None
    columns: Optional[List[str]] = None
    rows: Optional[List[List[Any]]] = None
    row_count: Optional[int] = None
    truncated: Optional[bool] = None
    returns_rows: Optional[bool] = None
    duration_ms: Optional[float] = None
    rendered: Optional[str] = None
    request_id: Optional[str] = None


class ErrorResponse(BaseModel):
    error: ErrorPayload
    sql: Optional[str] = None
    request_id: Optional[str] = None
