from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env into os.environ
load_dotenv()


class Settings(BaseSettings):
    """Application configuration settings backed by environment variables."""

    database_url: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")
    openai_api_key: Optional[SecretStr] = Field(default=None, validation_alias="OPENAI_API_KEY")
    anthropic_api_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("ANTHROPIC_API_KEY", "CLAUDE_API_KEY"),
    )

    llm_provider: str = Field(
        default="openai",
        validation_alias="NLQL_LLM_PROVIDER",
        description="Translation provider: openai (or gpt, chatgpt) or anthropic (or claude).",
    )
    llm_model: Optional[str] = Field(
        default=None,
        validation_alias="NLQL_LLM_MODEL",
        description="Chat model name. Defaults to gpt-4o for openai and claude-sonnet-4-20250514 for anthropic.",
    )
    llm_base_url: Optional[str] = Field(
        default=None,
        validation_alias="NLQL_LLM_BASE_URL",
        description="Override for the provider endpoint, e.g. an OpenAI-compatible gateway.",
    )

    execution_mode: Literal["read_only", "allow_mutations"] = Field(
        default="read_only",
        validation_alias="NLQL_EXECUTION_MODE",
        description="Default execution mode when the caller does not opt in to mutations.",
    )
    row_limit: int = Field(
        default=1000,
        validation_alias="NLQL_ROW_LIMIT",
        description="Maximum rows streamed back for a read statement before truncating.",
    )
    statement_timeout_ms: int = Field(
        default=30000,
        validation_alias="NLQL_STATEMENT_TIMEOUT_MS",
        description="Statement timeout applied to every execution.",
    )
    request_timeout_sec: float = Field(
        default=60.0,
        validation_alias="NLQL_REQUEST_TIMEOUT_SEC",
        description="Deadline for a whole pipeline run (translation plus execution).",
    )

    translation_timeout_sec: float = Field(default=30.0, validation_alias="NLQL_TRANSLATION_TIMEOUT_SEC")
    translation_max_attempts: int = Field(
        default=3,
        validation_alias="NLQL_TRANSLATION_MAX_ATTEMPTS",
        description="Attempts per translation, including the first one.",
    )
    translation_backoff_sec: float = Field(
        default=0.5,
        validation_alias="NLQL_TRANSLATION_BACKOFF_SEC",
        description="Base delay for exponential backoff between translation attempts.",
    )
    translation_backoff_max_sec: float = Field(default=8.0, validation_alias="NLQL_TRANSLATION_BACKOFF_MAX_SEC")

    prompt_schema_budget: int = Field(
        default=12000,
        validation_alias="NLQL_PROMPT_SCHEMA_BUDGET",
        description="Character budget for the schema section of the translation prompt.",
    )
    schema_cache_ttl_sec: float = Field(
        default=0.0,
        validation_alias="NLQL_SCHEMA_CACHE_TTL_SEC",
        description="Seconds an introspected schema may be reused. 0 disables caching.",
    )

    pool_size: int = Field(default=5, validation_alias="NLQL_POOL_SIZE")
    pool_max_overflow: int = Field(default=0, validation_alias="NLQL_POOL_MAX_OVERFLOW")
    pool_timeout_sec: float = Field(default=30.0, validation_alias="NLQL_POOL_TIMEOUT_SEC")

    breaker_fail_max: int = Field(default=5, validation_alias="NLQL_BREAKER_FAIL_MAX")
    breaker_reset_sec: int = Field(default=60, validation_alias="NLQL_BREAKER_RESET_SEC")

    log_level: str = Field(default="WARNING", validation_alias="NLQL_LOG_LEVEL")
    log_json: bool = Field(default=False, validation_alias="NLQL_LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def configure_env(self, env: str) -> None:
        """Loads environment-specific variables and reloads settings."""
        if not env:
            return

        load_dotenv(f".env.{env}", override=True)
        new_settings = Settings()
        self.__dict__.update(new_settings.__dict__)


settings = Settings()
