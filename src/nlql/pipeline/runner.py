from __future__ import annotations

import time
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from nlql.common.cancellation import RequestDeadline
from nlql.common.logger import get_logger, request_context
from nlql.common.settings import Settings, settings as default_settings
from nlql.datasources.database import Database
from nlql.execution.executor import QueryExecutor
from nlql.formatting.formatter import ResultFormatter
from nlql.pipeline.graph import build_graph
from nlql.pipeline.outcome import PipelineOutcome
from nlql.pipeline.state import ConfirmCallback, PipelineRequest
from nlql.schema.cache import SchemaCache
from nlql.schema.introspector import SchemaIntrospector
from nlql.schema.models import SchemaSnapshot
from nlql.translation.prompt_builder import PromptBuilder
from nlql.translation.provider import TranslationProvider
from nlql.translation.registry import create_provider, resolve_provider
from nlql.validation.models import ExecutionMode
from nlql.validation.validator import StatementValidator

logger = get_logger("pipeline_runner")


class PipelineConfig(BaseModel):
    """Snapshot of the settings a Pipeline needs.

    Built once at startup; nothing in the pipeline reads the environment
    after this point.
    """

    database_url: Optional[str] = None
    llm_provider: str = "openai"
    llm_model: Optional[str] = None
    llm_base_url: Optional[str] = None
    llm_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None

    execution_mode: ExecutionMode = ExecutionMode.READ_ONLY
    row_limit: int = 1000
    statement_timeout_ms: int = 30000
    request_timeout_sec: Optional[float] = 60.0

    translation_timeout_sec: float = 30.0
    translation_max_attempts: int = 3
    translation_backoff_sec: float = 0.5
    translation_backoff_max_sec: float = 8.0

    prompt_schema_budget: int = 12000
    schema_cache_ttl_sec: float = 0.0

    pool_size: int = 5
    pool_max_overflow: int = 0
    pool_timeout_sec: float = 30.0

    breaker_fail_max: int = 5
    breaker_reset_sec: int = 60

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None, **overrides: Any) -> "PipelineConfig":
        """Builds a config from application settings, with explicit overrides (e.g. CLI flags) applied last."""
        source = source or default_settings
        values = {name: getattr(source, name) for name in cls.model_fields if hasattr(source, name)}
        for name in ("openai_api_key", "anthropic_api_key"):
            key = getattr(source, name)
            values[name] = key.get_secret_value() if key is not None else None
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def provider_api_key(self) -> Optional[str]:
        """The explicit API key, or the configured key of the selected provider."""
        if self.llm_api_key:
            return self.llm_api_key
        if resolve_provider(self.llm_provider) == "anthropic":
            return self.anthropic_api_key
        return self.openai_api_key


class Pipeline:
    """Runs natural-language questions through the query graph.

    One compiled graph per Pipeline, shared by every request. The pipeline
    owns the Database (and its connection pool) and the optional schema
    cache; both live from :meth:`open` until :meth:`close`.
    """

    def __init__(
        self,
        database: Database,
        provider: TranslationProvider,
        row_limit: int = 1000,
        statement_timeout_ms: int = 30000,
        request_timeout_sec: Optional[float] = 60.0,
        prompt_schema_budget: int = 12000,
        schema_cache: Optional[SchemaCache] = None,
        introspector: Optional[SchemaIntrospector] = None,
        validator: Optional[StatementValidator] = None,
        confirm: Optional[ConfirmCallback] = None,
    ):
        self.database = database
        self.provider = provider
        self.request_timeout_sec = request_timeout_sec
        self.schema_cache = schema_cache
        self.introspector = introspector or SchemaIntrospector()
        self.validator = validator or StatementValidator()
        self.prompt_builder = PromptBuilder(schema_char_budget=prompt_schema_budget, row_limit=row_limit)
        self.executor = QueryExecutor(database, row_limit=row_limit, statement_timeout_ms=statement_timeout_ms)
        self.formatter = ResultFormatter(row_limit=row_limit)
        self.confirm = confirm

        self.graph = build_graph(
            database=self.database,
            load_snapshot=self.load_snapshot,
            prompt_builder=self.prompt_builder,
            provider=self.provider,
            validator=self.validator,
            executor=self.executor,
            formatter=self.formatter,
        )

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig,
        provider: Optional[TranslationProvider] = None,
        database: Optional[Database] = None,
        confirm: Optional[ConfirmCallback] = None,
    ) -> "Pipeline":
        """Wires a Pipeline from configuration.

        Raises:
            ConfigurationError: Missing database URL, unknown provider or missing API key.
        """
        if database is None:
            database = Database(
                config.database_url or "",
                pool_size=config.pool_size,
                max_overflow=config.pool_max_overflow,
                pool_timeout_sec=config.pool_timeout_sec,
            )
        if provider is None:
            provider = create_provider(
                config.llm_provider,
                model=config.llm_model,
                api_key=config.provider_api_key(),
                base_url=config.llm_base_url,
                timeout_sec=config.translation_timeout_sec,
                max_attempts=config.translation_max_attempts,
                backoff_sec=config.translation_backoff_sec,
                backoff_max_sec=config.translation_backoff_max_sec,
                breaker_fail_max=config.breaker_fail_max,
                breaker_reset_sec=config.breaker_reset_sec,
            )
        cache = SchemaCache(config.schema_cache_ttl_sec) if config.schema_cache_ttl_sec > 0 else None
        return cls(
            database=database,
            provider=provider,
            row_limit=config.row_limit,
            statement_timeout_ms=config.statement_timeout_ms,
            request_timeout_sec=config.request_timeout_sec,
            prompt_schema_budget=config.prompt_schema_budget,
            schema_cache=cache,
            confirm=confirm,
        )

    def open(self) -> "Pipeline":
        self.database.open()
        return self

    def close(self) -> None:
        if self.schema_cache is not None:
            self.schema_cache.invalidate()
        self.database.close()

    def __enter__(self) -> "Pipeline":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    def load_snapshot(self, database: Optional[Database] = None) -> SchemaSnapshot:
        database = database or self.database
        if self.schema_cache is None:
            return self.introspector.introspect(database)
        return self.schema_cache.get_or_build(
            database.connection_id,
            lambda: self.introspector.introspect(database),
        )

    def run(self, request: PipelineRequest) -> PipelineOutcome:
        """Runs one request through the graph.

        Args:
            request (PipelineRequest): The question and its run options.

        Returns:
            PipelineOutcome: ``Translated`` (dry run), ``Executed`` or ``Rejected``.

        Raises:
            NlqlError: The typed error of the stage that failed.
        """
        with request_context(request.request_id):
            started = time.perf_counter()
            logger.info(f"Running query (dry_run={request.dry_run}, mode={request.execution_mode.value})")

            final = self.graph.invoke({
                "request": request,
                "deadline": RequestDeadline(self.request_timeout_sec),
                "confirm": self.confirm,
            })

            duration = time.perf_counter() - started
            error = final.get("error")
            if error is not None:
                candidate = final.get("candidate")
                if candidate is not None:
                    error.sql = candidate.sql
                logger.error(f"Pipeline failed in {duration:.2f}s at {error.stage.value}: {error}")
                raise error

            outcome = final["outcome"]
            logger.info(f"Pipeline finished in {duration:.2f}s with {outcome.kind}")
            return outcome
