from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Annotated

from nlql.execution.contracts import ExecutionResult
from nlql.validation.models import StatementClassification


class _OutcomeBase(BaseModel):
    sql: str
    classification: StatementClassification
    rendered: str = Field("", description="Formatter output for the requested format.")
    request_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class Translated(_OutcomeBase):
    """Dry run: the statement was validated and permitted but not executed."""

    kind: Literal["translated"] = "translated"


class Executed(_OutcomeBase):
    kind: Literal["executed"] = "executed"
    result: ExecutionResult


class Rejected(_OutcomeBase):
    """The policy (or the user, via confirmation) refused to execute the statement."""

    kind: Literal["rejected"] = "rejected"
    reason: str


PipelineOutcome = Annotated[Union[Translated, Executed, Rejected], Field(discriminator="kind")]
