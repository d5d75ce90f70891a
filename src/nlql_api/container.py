from typing import Optional

from nlql.common.logger import get_logger
from nlql.pipeline.runner import Pipeline, PipelineConfig
from nlql.validation.models import ExecutionMode
from nlql_api.services import HealthService, QueryService, SchemaService

logger = get_logger("api_container")


class Container:
    """Process-wide collaborators of the HTTP service.

    Built by the app lifespan at startup; :meth:`close` disposes the
    connection pool at shutdown, after uvicorn has drained in-flight requests.
    """

    def __init__(self, config: PipelineConfig, pipeline: Optional[Pipeline] = None):
        self.config = config
        self.pipeline = pipeline or Pipeline.from_config(config)

        allow_mutations = config.execution_mode == ExecutionMode.ALLOW_MUTATIONS
        self.query = QueryService(self.pipeline, allow_mutations=allow_mutations)
        self.health = HealthService(self.pipeline)
        self.schema = SchemaService(self.pipeline)

    def open(self) -> "Container":
        self.pipeline.open()
        logger.info(f"API container ready for {self.pipeline.database}")
        return self

    def close(self) -> None:
        self.pipeline.close()
