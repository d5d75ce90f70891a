from sqlalchemy.exc import SQLAlchemyError

from nlql.common.logger import get_logger
from nlql.pipeline.runner import Pipeline
from nlql_api.models.response import HealthResponse

logger = get_logger("health")


class HealthService:
    def __init__(self, pipeline: Pipeline):
        self.pipeline = pipeline

    def health_check(self) -> HealthResponse:
        database = self.pipeline.database
        info = database.describe()
        try:
            with database.connect() as conn:
                conn.exec_driver_sql("SELECT 1")
        except (SQLAlchemyError, RuntimeError) as e:
            logger.warning(f"Health check failed for {database}: {e}")
            return HealthResponse(status="unavailable", dialect=info["dialect"], database=info["database"], detail=str(e))
        return HealthResponse(status="ok", dialect=info["dialect"], database=info["database"])
