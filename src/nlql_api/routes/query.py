from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from nlql.pipeline.outcome import Rejected
from nlql_api.dependencies import get_query_service, get_request_id
from nlql_api.models.query import ErrorResponse, QueryRequest, QueryResponse
from nlql_api.services import QueryService

router = APIRouter()

QuerySvc = Annotated[QueryService, Depends(get_query_service)]
RequestId = Annotated[str, Depends(get_request_id)]


@router.post(
    "/query",
    response_model=QueryResponse,
    response_model_exclude_none=True,
    responses={
        422: {"model": QueryResponse, "description": "Statement rejected by policy"},
        502: {"model": ErrorResponse, "description": "Translation failed"},
        504: {"model": ErrorResponse, "description": "Execution timed out"},
        500: {"model": ErrorResponse, "description": "Execution or introspection failed"},
    },
)
async def execute_query(
    payload: QueryRequest,
    service: QuerySvc,
    request_id: RequestId,
):
    outcome, response = await run_in_threadpool(service.execute_query, payload, request_id)
    if isinstance(outcome, Rejected):
        return JSONResponse(status_code=422, content=response.model_dump(mode="json", exclude_none=True))
    return response
