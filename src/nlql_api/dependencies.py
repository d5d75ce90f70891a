from fastapi import Depends, Request

from nlql_api.container import Container
from nlql_api.services import HealthService, QueryService, SchemaService


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_query_service(
    container: Container = Depends(get_container),
) -> QueryService:
    return container.query


def get_health_service(
    container: Container = Depends(get_container),
) -> HealthService:
    return container.health


def get_schema_service(
    container: Container = Depends(get_container),
) -> SchemaService:
    return container.schema


def get_request_id(request: Request) -> str:
    return request.state.request_id
