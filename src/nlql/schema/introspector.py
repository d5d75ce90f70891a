from __future__ import annotations

from typing import List

from sqlalchemy import inspect
from sqlalchemy.engine import Inspector
from sqlalchemy.exc import SQLAlchemyError

from nlql.common.errors import IntrospectionError
from nlql.common.logger import get_logger
from nlql.datasources.database import Database
from nlql.schema.models import ColumnInfo, ForeignKeyRef, SchemaSnapshot, TableInfo

logger = get_logger("introspector")

_SYSTEM_PREFIXES = ("sqlite_", "pg_", "information_schema")


def _is_system_table(name: str) -> bool:
    return name.lower().startswith(_SYSTEM_PREFIXES)


class SchemaIntrospector:
    """Builds a SchemaSnapshot from the database catalog.

    Failures are structural (bad credentials, missing database, revoked
    grants) and are surfaced immediately as ``IntrospectionError``.
    """

    def introspect(self, database: Database) -> SchemaSnapshot:
        try:
            with database.connect() as conn:
                inspector = inspect(conn)
                table_names = sorted(n for n in inspector.get_table_names() if not _is_system_table(n))
                tables = [self._describe_table(inspector, name) for name in table_names]
        except SQLAlchemyError as e:
            logger.error(f"Failed to introspect {database}: {e}")
            raise IntrospectionError(f"failed to read schema for {database.connection_id}: {e}") from e

        logger.info(f"Introspected {len(tables)} tables from {database}")
        return SchemaSnapshot(
            connection_id=database.connection_id,
            dialect=database.dialect,
            tables=tuple(tables),
        )

    def _describe_table(self, inspector: Inspector, table_name: str) -> TableInfo:
        columns = [
            ColumnInfo(
                name=col["name"],
                declared_type=str(col["type"]),
                nullable=bool(col.get("nullable", True)),
            )
            for col in inspector.get_columns(table_name)
        ]

        pk = inspector.get_pk_constraint(table_name) or {}
        primary_key = tuple(pk.get("constrained_columns") or ())

        fks: List[ForeignKeyRef] = []
        for fk_info in inspector.get_foreign_keys(table_name):
            for local, remote in zip(fk_info["constrained_columns"], fk_info["referred_columns"]):
                fks.append(ForeignKeyRef(
                    column=local,
                    referred_table=fk_info["referred_table"],
                    referred_column=remote,
                ))

        return TableInfo(
            name=table_name,
            columns=tuple(columns),
            primary_key=primary_key,
            foreign_keys=tuple(fks),
        )
