from typing import Any, Dict

from nlql.pipeline.runner import Pipeline


class SchemaService:
    def __init__(self, pipeline: Pipeline):
        self.pipeline = pipeline

    def get_schema(self) -> Dict[str, Any]:
        return self.pipeline.load_snapshot().model_dump(mode="json")
