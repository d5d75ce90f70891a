from __future__ import annotations

import operator
import uuid
from typing import Any, Callable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Annotated

from nlql.common.cancellation import RequestDeadline
from nlql.common.errors import NlqlError, PipelineStage
from nlql.execution.contracts import ExecutionResult
from nlql.formatting.formatter import OutputFormat
from nlql.schema.models import SchemaSnapshot
from nlql.translation.prompt_builder import HistoryTurn
from nlql.translation.provider import CandidateSQL
from nlql.validation.models import ExecutionMode, PolicyDecision, StatementClassification

ConfirmCallback = Callable[[str, StatementClassification], bool]


class PipelineRequest(BaseModel):
    """One user request, constructed by the CLI or the HTTP layer."""

    question: str
    dry_run: bool = False
    execution_mode: ExecutionMode = ExecutionMode.READ_ONLY
    output_format: OutputFormat = OutputFormat.TABLE
    history: Tuple[HistoryTurn, ...] = Field(default_factory=tuple)
    request_id: str = Field(default_factory=lambda: uuid.uuid4().hex)

    model_config = ConfigDict(frozen=True)


class GraphState(BaseModel):
    model_config = ConfigDict(extra="ignore", arbitrary_types_allowed=True)

    request: PipelineRequest = Field(description="The request being served.")
    deadline: Optional[RequestDeadline] = Field(default=None)
    confirm: Optional[ConfirmCallback] = Field(default=None)

    stage: PipelineStage = Field(default=PipelineStage.INIT)
    stages: Annotated[List[PipelineStage], operator.add] = Field(default_factory=list)

    snapshot: Optional[SchemaSnapshot] = Field(default=None)
    candidate: Optional[CandidateSQL] = Field(default=None)
    classification: Optional[StatementClassification] = Field(default=None)
    decision: Optional[PolicyDecision] = Field(default=None)
    result: Optional[ExecutionResult] = Field(default=None)

    outcome: Optional[Any] = Field(default=None, description="Translated, Executed or Rejected.")
    error: Optional[NlqlError] = Field(default=None, description="Set when a stage failed.")
