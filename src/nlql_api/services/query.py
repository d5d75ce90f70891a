from typing import Tuple

from nlql.formatting.formatter import OutputFormat, outcome_payload
from nlql.pipeline.outcome import PipelineOutcome
from nlql.pipeline.runner import Pipeline
from nlql.pipeline.state import PipelineRequest
from nlql.validation.models import ExecutionMode
from nlql_api.models.query import QueryRequest, QueryResponse


class QueryService:
    def __init__(self, pipeline: Pipeline, allow_mutations: bool = False):
        self.pipeline = pipeline
        self.allow_mutations = allow_mutations

    def execution_mode(self, request: QueryRequest) -> ExecutionMode:
        if request.allow_mutations and self.allow_mutations:
            return ExecutionMode.ALLOW_MUTATIONS
        return ExecutionMode.READ_ONLY

    def execute_query(self, request: QueryRequest, request_id: str) -> Tuple[PipelineOutcome, QueryResponse]:
        outcome = self.pipeline.run(PipelineRequest(
            question=request.question,
            dry_run=request.dry_run,
            execution_mode=self.execution_mode(request),
            output_format=request.output,
            history=tuple(request.history),
            request_id=request_id,
        ))

        payload = outcome_payload(outcome)
        if request.output == OutputFormat.TABLE:
            payload["rendered"] = outcome.rendered
        return outcome, QueryResponse(**payload)
