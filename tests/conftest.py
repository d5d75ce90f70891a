import sqlite3
from typing import List, Optional, Union

import pytest

from nlql.common.cancellation import RequestDeadline
from nlql.datasources.database import Database
from nlql.translation.prompt_builder import TranslationPrompt
from nlql.translation.provider import CandidateSQL, TranslationProvider

USERS = [
    (1, "Alice", "alice@example.com"),
    (2, "Bob", None),
    (3, "Carol", "carol@example.com"),
]

ORDERS = [
    (1, 1, "shipped", 25.0),
    (2, 1, "pending", 10.5),
    (3, 2, "shipped", 99.99),
    (4, 3, "cancelled", 5.0),
]

SCHEMA_SQL = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT
);
CREATE TABLE orders (
    id INTEGER PRIMARY KEY,
    user_id INTEGER NOT NULL REFERENCES users(id),
    status TEXT NOT NULL CHECK (status IN ('pending', 'shipped', 'cancelled')),
    total REAL NOT NULL
);
"""


def count_rows(path, table: str) -> int:
    conn = sqlite3.connect(str(path))
    try:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
    finally:
        conn.close()


class ScriptedProvider(TranslationProvider):
    """Returns canned SQL (or raises canned errors) in order; the last entry repeats."""

    name = "scripted"

    def __init__(self, responses: List[Union[str, BaseException]]):
        self.responses = list(responses)
        self.prompts: List[TranslationPrompt] = []

    def translate(self, prompt: TranslationPrompt, deadline: Optional[RequestDeadline] = None) -> CandidateSQL:
        self.prompts.append(prompt)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, BaseException):
            raise item
        return CandidateSQL(sql=item, raw_response=item, model="scripted", latency_ms=1.0)


@pytest.fixture
def sqlite_path(tmp_path):
    """A small shop database: users and orders with a primary key, a foreign key and a CHECK."""
    path = tmp_path / "shop.db"
    conn = sqlite3.connect(str(path))
    conn.executescript(SCHEMA_SQL)
    conn.executemany("INSERT INTO users VALUES (?, ?, ?)", USERS)
    conn.executemany("INSERT INTO orders VALUES (?, ?, ?, ?)", ORDERS)
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def database(sqlite_path):
    db = Database(str(sqlite_path)).open()
    yield db
    db.close()


@pytest.fixture
def scripted_provider():
    def _factory(*responses):
        return ScriptedProvider(list(responses))
    return _factory


@pytest.fixture
def row_count(sqlite_path):
    def _count(table: str) -> int:
        return count_rows(sqlite_path, table)
    return _count
