"""Schema snapshot models, introspection and caching."""

from .models import ColumnInfo, ForeignKeyRef, TableInfo, SchemaSnapshot
from .introspector import SchemaIntrospector
from .cache import SchemaCache

__all__ = [
    "ColumnInfo",
    "ForeignKeyRef",
    "TableInfo",
    "SchemaSnapshot",
    "SchemaIntrospector",
    "SchemaCache",
]
