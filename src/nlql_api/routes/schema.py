from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from nlql_api.dependencies import get_schema_service
from nlql_api.services import SchemaService

router = APIRouter()

SchemaSvc = Annotated[SchemaService, Depends(get_schema_service)]


@router.get("/schema")
async def get_schema(service: SchemaSvc) -> Dict[str, Any]:
    return await run_in_threadpool(service.get_schema)
