from typing import Annotated

from fastapi import APIRouter, Depends, Response
from fastapi.concurrency import run_in_threadpool

from nlql_api.dependencies import get_health_service
from nlql_api.models.response import HealthResponse
from nlql_api.services import HealthService

router = APIRouter()

HealthSvc = Annotated[HealthService, Depends(get_health_service)]


@router.get("/health", response_model=HealthResponse, response_model_exclude_none=True)
async def health_check(
    service: HealthSvc,
    response: Response,
):
    result = await run_in_threadpool(service.health_check)
    if result.status != "ok":
        response.status_code = 503
    return result
