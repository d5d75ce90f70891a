from typing import Optional

# SQLAlchemy backend name -> sqlglot dialect
SQLGLOT_DIALECTS = {
    "postgresql": "postgres",
    "mysql": "mysql",
    "mariadb": "mysql",
    "sqlite": "sqlite",
    "mssql": "tsql",
    "oracle": "oracle",
}


def sqlglot_dialect(dialect: Optional[str]) -> Optional[str]:
    return SQLGLOT_DIALECTS.get((dialect or "").lower())
