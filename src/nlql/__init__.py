"""Natural-language to SQL translation with a validation gate in front of the database."""

from nlql.common.errors import (
    ConfigurationError,
    ExecutionError,
    ExecutionErrorKind,
    IntrospectionError,
    NlqlError,
    PipelineStage,
    TranslationError,
    TranslationErrorKind,
)
from nlql.datasources.database import Database
from nlql.execution.contracts import ExecutionResult
from nlql.formatting.formatter import OutputFormat, ResultFormatter
from nlql.pipeline.outcome import Executed, PipelineOutcome, Rejected, Translated
from nlql.pipeline.state import PipelineRequest
from nlql.pipeline.runner import Pipeline, PipelineConfig
from nlql.schema.models import SchemaSnapshot
from nlql.translation.prompt_builder import HistoryTurn
from nlql.translation.provider import CandidateSQL, TranslationProvider
from nlql.validation.models import ExecutionMode, StatementCategory, StatementClassification

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "ExecutionError",
    "ExecutionErrorKind",
    "IntrospectionError",
    "NlqlError",
    "PipelineStage",
    "TranslationError",
    "TranslationErrorKind",
    "Database",
    "ExecutionResult",
    "OutputFormat",
    "ResultFormatter",
    "Executed",
    "PipelineOutcome",
    "Rejected",
    "Translated",
    "PipelineRequest",
    "Pipeline",
    "PipelineConfig",
    "SchemaSnapshot",
    "HistoryTurn",
    "CandidateSQL",
    "TranslationProvider",
    "ExecutionMode",
    "StatementCategory",
    "StatementClassification",
]
