from .query import QueryService
from .health import HealthService
from .schema import SchemaService

__all__ = ["QueryService", "HealthService", "SchemaService"]
