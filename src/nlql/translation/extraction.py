import re
from typing import List, Optional

import sqlglot
from sqlglot.errors import ParseError, TokenError

from nlql.common.dialects import sqlglot_dialect
from nlql.common.errors import TranslationError, TranslationErrorKind

_FENCE_RE = re.compile(r"```(?:[A-Za-z0-9_-]*[ \t]*\n)?(.*?)```", re.DOTALL)

SQL_KEYWORDS = (
    "SELECT", "WITH", "INSERT", "UPDATE", "DELETE", "MERGE",
    "CREATE", "ALTER", "DROP", "TRUNCATE", "EXPLAIN", "VALUES",
)

# The keyword must be followed by whitespace, "(", "*" or the end of the line, so "Update:" is prose.
_LEADING_KEYWORD_RE = re.compile(
    r"^\(*\s*(" + "|".join(SQL_KEYWORDS) + r")(?=[\s(*]|$)",
    re.IGNORECASE,
)
_CONTINUATION_RE = re.compile(r"^(;|--|/\*)")


def _starts_statement(line: str) -> bool:
    return bool(_LEADING_KEYWORD_RE.match(line.strip()))


def parses_as_sql(text: str, dialect: Optional[str] = None) -> bool:
    """True when sqlglot can tokenize and parse ``text`` in the given dialect."""
    try:
        expressions = sqlglot.parse(text, read=sqlglot_dialect(dialect))
    except (ParseError, TokenError):
        return False
    return any(e is not None for e in expressions)


def _statement_block(lines: List[str], start: int) -> str:
    """Lines from ``start`` up to the first blank line followed by prose."""
    block = [lines[start]]
    after_blank = False
    for line in lines[start + 1:]:
        stripped = line.strip()
        if not stripped:
            after_blank = True
            block.append(line)
            continue
        if after_blank and not (_starts_statement(stripped) or _CONTINUATION_RE.match(stripped)):
            break
        after_blank = False
        block.append(line)
    return "\n".join(block).strip()


def extract_sql(raw: str, dialect: Optional[str] = None) -> str:
    """Pulls the SQL statement out of a model response.

    The first fenced code block wins when one exists. Otherwise the statement
    starts at the first line that begins with a SQL keyword and parses as
    SQL, and runs until a blank line followed by prose. Further statements
    after a blank line are kept so the validator sees them.

    Args:
        raw (str): The raw text returned by the model.
        dialect (Optional[str]): Database dialect used to check candidate lines.

    Returns:
        str: The statement, stripped of surrounding whitespace.

    Raises:
        TranslationError: ``malformed_response`` when no SQL can be found,
            which covers refusals and empty answers.
    """
    text = (raw or "").strip()

    fenced = _FENCE_RE.search(text)
    if fenced:
        candidate = fenced.group(1).strip()
        if candidate:
            return candidate

    lines = text.replace("```", "").splitlines()
    for i, line in enumerate(lines):
        if not _starts_statement(line):
            continue
        candidate = _statement_block(lines, i)
        if parses_as_sql(candidate, dialect):
            return candidate

    preview = text[:80] + ("..." if len(text) > 80 else "")
    raise TranslationError(
        TranslationErrorKind.MALFORMED_RESPONSE,
        f"model response contained no SQL: {preview!r}",
    )
