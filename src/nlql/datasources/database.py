from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine, URL, make_url
from sqlalchemy.exc import ArgumentError, NoSuchModuleError

from nlql.common.errors import ConfigurationError
from nlql.common.logger import get_logger

logger = get_logger("database")

_SCHEME_ALIASES = {
    "postgres": "postgresql",
    "mysql": "mysql+pymysql",
    "mariadb": "mariadb+pymysql",
}

_DRIVER_EXTRAS = {
    "postgresql": "postgres",
    "mysql": "mysql",
    "mariadb": "mysql",
}


def normalize_url(raw: str) -> URL:
    """Turns a user supplied connection string into a SQLAlchemy URL.

    Accepts ``postgres://`` and ``postgresql://`` URLs, ``mysql://`` and
    ``mariadb://`` URLs, ``sqlite:path`` / ``sqlite:///path`` and bare file
    paths, which are treated as SQLite databases.

    Raises:
        ConfigurationError: If the string is empty or cannot be parsed.
    """
    value = (raw or "").strip()
    if not value:
        raise ConfigurationError("database url required (--db or DATABASE_URL)")

    if "://" not in value:
        path = value[len("sqlite:"):] if value.startswith("sqlite:") else value
        value = "sqlite://" if path in ("", ":memory:") else f"sqlite:///{path}"
    else:
        scheme, rest = value.split("://", 1)
        value = f"{_SCHEME_ALIASES.get(scheme.lower(), scheme)}://{rest}"

    try:
        return make_url(value)
    except ArgumentError as e:
        raise ConfigurationError(f"invalid database url: {e}") from e


class Database:
    """Owns the process-wide SQLAlchemy engine and its bounded connection pool.

    The engine is created by an explicit :meth:`open` and released by
    :meth:`close`; nothing connects at import or construction time.
    """

    def __init__(
        self,
        url: str,
        pool_size: int = 5,
        max_overflow: int = 0,
        pool_timeout_sec: float = 30.0,
    ):
        self.url = normalize_url(url)
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout_sec = pool_timeout_sec
        self._engine: Optional[Engine] = None

    def __str__(self):
        return f"{self.connection_id} ({self.dialect})"

    @property
    def dialect(self) -> str:
        return self.url.get_backend_name()

    @property
    def connection_id(self) -> str:
        return self.url.render_as_string(hide_password=True)

    @property
    def host(self) -> str:
        if self.dialect == "sqlite":
            return "local"
        return self.url.host or "localhost"

    @property
    def database(self) -> str:
        name = self.url.database or ""
        if self.dialect == "sqlite":
            return name.replace("\\", "/").rsplit("/", 1)[-1] or ":memory:"
        return name or "default"

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError(f"Database {self} is not open")
        return self._engine

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def _engine_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"pool_pre_ping": True}
        # SQLite picks its own pool class; QueuePool sizing only applies to server databases.
        if self.dialect != "sqlite":
            kwargs.update(
                pool_size=self.pool_size,
                max_overflow=self.max_overflow,
                pool_timeout=self.pool_timeout_sec,
            )
        return kwargs

    def open(self) -> "Database":
        if self._engine is not None:
            return self
        try:
            self._engine = create_engine(self.url, **self._engine_kwargs())
        except (ImportError, NoSuchModuleError) as e:
            extra = _DRIVER_EXTRAS.get(self.dialect)
            hint = f" (install it with: pip install 'nlql[{extra}]')" if extra else ""
            raise ConfigurationError(f"database driver for {self.dialect} is not available{hint}: {e}") from e
        logger.info(f"Opened connection pool for {self}")
        return self

    def connect(self) -> Connection:
        """Checks a connection out of the pool."""
        return self.engine.connect()

    def close(self) -> None:
        if self._engine is not None:
            logger.info(f"Disposing connection pool for {self}")
            self._engine.dispose()
            self._engine = None

    def describe(self) -> Dict[str, str]:
        return {
            "dialect": self.dialect,
            "host": self.host,
            "database": self.database,
        }

    def __enter__(self) -> "Database":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()
