from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder
from pydantic import BaseModel, ConfigDict, Field

from nlql.schema.models import SchemaSnapshot, TableInfo
from .prompts import OTHER_TABLES_LABEL, SYSTEM_PROMPT, USER_PROMPT

_TOKEN_RE = re.compile(r"[a-z0-9]+")

TABLE_NAME_WEIGHT = 3
COLUMN_WEIGHT = 1


class HistoryTurn(BaseModel):
    """A previous question and the SQL that answered it."""

    question: str
    sql: str

    model_config = ConfigDict(frozen=True)


class TranslationRequest(BaseModel):
    question: str
    snapshot: SchemaSnapshot
    history: Tuple[HistoryTurn, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True)


class TranslationPrompt(BaseModel):
    """Rendered prompt handed to a TranslationProvider.

    Attributes:
        system (str): Instructions, dialect and row limit.
        user (str): Schema text followed by the question.
        history (Tuple[HistoryTurn, ...]): Prior turns replayed as chat messages.
        dialect (Optional[str]): Target database dialect, used when checking the reply.
    """

    system: str
    user: str
    history: Tuple[HistoryTurn, ...] = Field(default_factory=tuple)
    dialect: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    def to_messages(self) -> List[BaseMessage]:
        template = ChatPromptTemplate.from_messages([
            ("system", "{system}"),
            MessagesPlaceholder("history"),
            ("human", "{user}"),
        ])
        history: List[BaseMessage] = []
        for turn in self.history:
            history.append(HumanMessage(content=turn.question))
            history.append(AIMessage(content=turn.sql))
        return template.format_messages(system=self.system, history=history, user=self.user)


def _singular(token: str) -> str:
    if len(token) > 3 and token.endswith("s") and not token.endswith("ss"):
        return token[:-1]
    return token


def keywords(text: str) -> set:
    """Lower-cased alphanumeric tokens of ``text`` with a naive plural strip."""
    return {_singular(t) for t in _TOKEN_RE.findall(text.lower())}


def render_table(table: TableInfo) -> str:
    pk = set(table.primary_key)
    lines = [f"TABLE {table.name} ("]
    for col in table.columns:
        parts = [f"  {col.name} {col.declared_type}"]
        if not col.nullable:
            parts.append("NOT NULL")
        if col.name in pk:
            parts.append("PK")
        lines.append(" ".join(parts))
    for fk in table.foreign_keys:
        lines.append(f"  FK {fk.column} -> {fk.referred_table}.{fk.referred_column}")
    lines.append(")")
    return "\n".join(lines)


class PromptBuilder:
    """Renders a TranslationRequest into a deterministic prompt.

    The schema section is bounded by ``schema_char_budget``. Tables are ranked
    by how many of the question's keywords appear in their name (weighted
    higher) and column names, ties broken by table name. Ranked tables are
    written in full while they fit; the rest are listed by name on a single
    "Other tables" line, itself bounded by the remaining budget.
    """

    def __init__(self, schema_char_budget: int = 12000, row_limit: int = 1000):
        self.schema_char_budget = schema_char_budget
        self.row_limit = row_limit

    def score(self, question_keywords: set, table: TableInfo) -> int:
        name_hits = len(question_keywords & keywords(table.name))
        column_hits = 0
        for name in table.column_names:
            if question_keywords & keywords(name):
                column_hits += 1
        return TABLE_NAME_WEIGHT * name_hits + COLUMN_WEIGHT * column_hits

    def rank_tables(self, question: str, tables: Sequence[TableInfo]) -> List[TableInfo]:
        q = keywords(question)
        return sorted(tables, key=lambda t: (-self.score(q, t), t.name))

    def render_schema(self, question: str, snapshot: SchemaSnapshot) -> str:
        if not snapshot.tables:
            return "(no tables)"

        remaining = self.schema_char_budget
        blocks: List[str] = []
        overflow: List[str] = []
        for table in self.rank_tables(question, snapshot.tables):
            block = render_table(table)
            cost = len(block) + 2
            if cost <= remaining:
                blocks.append(block)
                remaining -= cost
            else:
                overflow.append(table.name)

        sections = list(blocks)
        if overflow:
            sections.append(self._other_tables_line(overflow, remaining))
        return "\n\n".join(sections)

    def _other_tables_line(self, names: List[str], budget: int) -> str:
        line = f"{OTHER_TABLES_LABEL}:"
        listed = 0
        for name in names:
            candidate = f"{line} {name}" if listed == 0 else f"{line}, {name}"
            if len(candidate) > budget:
                break
            line = candidate
            listed += 1
        omitted = len(names) - listed
        if omitted:
            line = f"{line} (+{omitted} more)"
        return line

    def build(self, request: TranslationRequest) -> TranslationPrompt:
        system = SYSTEM_PROMPT.format(dialect=request.snapshot.dialect, row_limit=self.row_limit).strip()
        user = USER_PROMPT.format(
            schema_info=self.render_schema(request.question, request.snapshot),
            question=request.question.strip(),
        ).strip()
        return TranslationPrompt(
            system=system,
            user=user,
            history=request.history,
            dialect=request.snapshot.dialect,
        )
