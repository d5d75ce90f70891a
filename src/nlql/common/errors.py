from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class PipelineStage(str, Enum):
    """States of the query pipeline."""
    INIT = "init"
    INTROSPECTING = "introspecting"
    TRANSLATING = "translating"
    VALIDATING = "validating"
    DRY_RUN_DONE = "dry_run_done"
    EXECUTING = "executing"
    FORMATTING = "formatting"
    DONE = "done"
    FAILED = "failed"


class FailureCategory(str, Enum):
    """Coarse failure classes used to pick CLI exit codes."""
    USAGE = "usage"
    EXTERNAL_SERVICE = "external_service"
    DATABASE = "database"


class TranslationErrorKind(str, Enum):
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    AUTH_FAILED = "auth_failed"
    MALFORMED_RESPONSE = "malformed_response"
    UNAVAILABLE = "unavailable"


class ExecutionErrorKind(str, Enum):
    TIMEOUT = "timeout"
    CONNECTION_LOST = "connection_lost"
    CONSTRAINT_VIOLATION = "constraint_violation"
    OTHER = "other"


TRANSIENT_TRANSLATION_ERRORS = {
    TranslationErrorKind.TIMEOUT,
    TranslationErrorKind.RATE_LIMITED,
    TranslationErrorKind.UNAVAILABLE,
}


class ErrorPayload(BaseModel):
    """Serializable view of a pipeline failure.

    Attributes:
        stage (str): The pipeline stage that failed.
        kind (str): The error kind within its family (e.g. ``timeout``).
        message (str): A human-readable error message.
    """
    model_config = ConfigDict(frozen=True)

    stage: str
    kind: str
    message: str


class NlqlError(Exception):
    """Base class for every failure that terminates a pipeline run."""

    category: FailureCategory = FailureCategory.DATABASE
    default_stage: PipelineStage = PipelineStage.FAILED

    def __init__(self, message: str, kind: str = "error", stage: Optional[PipelineStage] = None):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.stage = stage or self.default_stage
        self.sql: Optional[str] = None

    def to_payload(self) -> ErrorPayload:
        return ErrorPayload(stage=self.stage.value, kind=str(self.kind), message=self.message)

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class ConfigurationError(NlqlError):
    """Missing or invalid configuration (API key, connection string, provider)."""

    category = FailureCategory.USAGE
    default_stage = PipelineStage.INIT

    def __init__(self, message: str):
        super().__init__(message, kind="configuration")


class IntrospectionError(NlqlError):
    """Catalog metadata could not be read. Structural, never retried."""

    category = FailureCategory.DATABASE
    default_stage = PipelineStage.INTROSPECTING

    def __init__(self, message: str):
        super().__init__(message, kind="introspection")


class TranslationError(NlqlError):
    """The language model could not produce a candidate statement."""

    category = FailureCategory.EXTERNAL_SERVICE
    default_stage = PipelineStage.TRANSLATING

    def __init__(self, kind: TranslationErrorKind, message: str):
        super().__init__(message, kind=kind.value)
        self.error_kind = kind

    @property
    def is_transient(self) -> bool:
        return self.error_kind in TRANSIENT_TRANSLATION_ERRORS


class ExecutionError(NlqlError):
    """The database rejected or failed to complete a statement. Never retried."""

    category = FailureCategory.DATABASE
    default_stage = PipelineStage.EXECUTING

    def __init__(self, kind: ExecutionErrorKind, message: str):
        super().__init__(message, kind=kind.value)
        self.error_kind = kind
