import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nlql import __version__
from nlql.common.errors import ExecutionError, ExecutionErrorKind, NlqlError, TranslationError
from nlql.common.logger import get_logger, request_context
from nlql.pipeline.runner import Pipeline, PipelineConfig
from nlql_api.container import Container
from nlql_api.models.query import ErrorResponse
from nlql_api.routes import health, query, schema

logger = get_logger("api")


def status_for(error: NlqlError) -> int:
    if isinstance(error, TranslationError):
        return 502
    if isinstance(error, ExecutionError) and error.error_kind == ExecutionErrorKind.TIMEOUT:
        return 504
    return 500


async def nlql_error_handler(request: Request, exc: NlqlError) -> JSONResponse:
    body = ErrorResponse(
        error=exc.to_payload(),
        sql=exc.sql,
        request_id=getattr(request.state, "request_id", None),
    )
    return JSONResponse(status_code=status_for(exc), content=body.model_dump(exclude_none=True))


def create_app(config: Optional[PipelineConfig] = None, pipeline: Optional[Pipeline] = None) -> FastAPI:
    """Builds the HTTP application.

    The container (connection pool, schema cache, provider, pipeline) is
    created when the app starts and closed when it stops, never at import.

    Args:
        config (Optional[PipelineConfig]): Defaults to the process settings.
        pipeline (Optional[Pipeline]): Prebuilt pipeline, mainly for ``nlql serve`` and tests.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        container = Container(config or PipelineConfig.from_settings(), pipeline=pipeline).open()
        app.state.container = container
        try:
            yield
        finally:
            container.close()

    app = FastAPI(
        title="nlql API",
        version=__version__,
        lifespan=lifespan,
    )

    app.include_router(query.router)
    app.include_router(health.router)
    app.include_router(schema.router)

    app.add_exception_handler(NlqlError, nlql_error_handler)

    @app.middleware("http")
    async def assign_request_id(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id
        with request_context(request_id):
            response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    return app


app = create_app()
