from __future__ import annotations

from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class ColumnInfo(BaseModel):
    name: str
    declared_type: str
    nullable: bool = True

    model_config = ConfigDict(frozen=True)


class ForeignKeyRef(BaseModel):
    """One constrained column and the column it points at."""

    column: str
    referred_table: str
    referred_column: str

    model_config = ConfigDict(frozen=True)


class TableInfo(BaseModel):
    name: str
    columns: Tuple[ColumnInfo, ...] = Field(default_factory=tuple)
    primary_key: Tuple[str, ...] = Field(default_factory=tuple)
    foreign_keys: Tuple[ForeignKeyRef, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True)

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(c.name for c in self.columns)


class SchemaSnapshot(BaseModel):
    """Immutable description of the tables one connection can see.

    Tables are kept in lexical order by name and columns in their declared
    ordinal order. A snapshot belongs to a single connection identity and is
    never mutated after the introspector builds it.
    """

    connection_id: str
    dialect: str
    tables: Tuple[TableInfo, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True)

    @property
    def table_names(self) -> Tuple[str, ...]:
        return tuple(t.name for t in self.tables)

    def get_table(self, name: str) -> Optional[TableInfo]:
        wanted = name.lower()
        for table in self.tables:
            if table.name.lower() == wanted:
                return table
        return None
