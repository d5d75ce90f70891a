from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, List, Sequence

from pydantic_core import to_jsonable_python

from nlql.pipeline.outcome import Executed, PipelineOutcome, Rejected, Translated
from nlql.schema.models import SchemaSnapshot
from nlql.validation.models import RiskLevel, StatementClassification

MAX_CELL_WIDTH = 40
NULL_MARKER = "NULL"


class OutputFormat(str, Enum):
    TABLE = "table"
    RAW = "raw"


def format_cell(value: Any) -> str:
    """Renders one value for the table grid.

    ``None`` is shown as NULL; a string that literally reads NULL is quoted
    so the two stay distinguishable. Long values are cut to 40 characters.
    """
    if value is None:
        text = NULL_MARKER
    elif isinstance(value, str) and value == NULL_MARKER:
        text = f'"{NULL_MARKER}"'
    elif isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, (bytes, bytearray, memoryview)):
        text = "0x" + bytes(value).hex()
    else:
        text = str(value)
    text = text.replace("\r", " ").replace("\n", " ")
    if len(text) > MAX_CELL_WIDTH:
        text = text[: MAX_CELL_WIDTH - 3] + "..."
    return text


def render_grid(columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> str:
    cells = [[format_cell(v) for v in row] for row in rows]
    widths = [min(len(c), MAX_CELL_WIDTH) for c in columns]
    for row in cells:
        for i, text in enumerate(row):
            widths[i] = max(widths[i], len(text))

    def line(values: Sequence[str]) -> str:
        return " | ".join(v.ljust(widths[i]) for i, v in enumerate(values)).rstrip()

    header = [c if len(c) <= MAX_CELL_WIDTH else c[: MAX_CELL_WIDTH - 3] + "..." for c in columns]
    lines = [line(header), "-+-".join("-" * w for w in widths)]
    lines.extend(line(row) for row in cells)
    return "\n".join(lines)


def classification_payload(classification: StatementClassification) -> Dict[str, Any]:
    return classification.model_dump(mode="json", exclude_none=True)


def outcome_payload(outcome: PipelineOutcome) -> Dict[str, Any]:
    """JSON-safe dict describing an outcome, shared by raw output and the HTTP API."""
    payload: Dict[str, Any] = {
        "kind": outcome.kind,
        "sql": outcome.sql,
        "classification": classification_payload(outcome.classification),
    }
    if isinstance(outcome, Rejected):
        payload["rejected_reason"] = outcome.reason
    elif isinstance(outcome, Executed):
        result = outcome.result
        payload.update(
            columns=list(result.columns),
            rows=to_jsonable_python(result.rows, bytes_mode="base64"),
            row_count=result.row_count,
            truncated=result.truncated,
            returns_rows=result.returns_rows,
            duration_ms=round(result.duration_ms, 3),
        )
    if outcome.request_id:
        payload["request_id"] = outcome.request_id
    return payload


class ResultFormatter:
    """Pure rendering of pipeline outcomes and schema snapshots.

    ``table`` output is for humans: the SQL, its risk, then an aligned grid.
    ``raw`` output is a single JSON document for scripts.
    """

    def __init__(self, row_limit: int = 1000):
        self.row_limit = row_limit

    def render(self, outcome: PipelineOutcome, fmt: OutputFormat = OutputFormat.TABLE) -> str:
        if OutputFormat(fmt) == OutputFormat.RAW:
            return json.dumps(outcome_payload(outcome), ensure_ascii=False, default=str)
        return self._render_table(outcome)

    def _render_table(self, outcome: PipelineOutcome) -> str:
        sections: List[str] = [f"sql: {outcome.sql}"]

        classification = outcome.classification
        notes = []
        if classification.risk != RiskLevel.SAFE:
            notes.append(f"risk: {classification.risk.value}")
        notes.extend(f"warning: {w}" for w in classification.warnings)
        if notes:
            sections.append("\n".join(notes))

        if isinstance(outcome, Rejected):
            sections.append(f"rejected: {outcome.reason}")
        elif isinstance(outcome, Translated):
            sections.append("dry run: statement not executed")
        elif isinstance(outcome, Executed):
            sections.append(self._render_result(outcome))
        return "\n\n".join(sections)

    def _render_result(self, outcome: Executed) -> str:
        result = outcome.result
        if not result.returns_rows:
            noun = "row" if result.row_count == 1 else "rows"
            return f"{result.row_count} {noun} affected"
        if not result.rows:
            return "(no rows)"

        parts = [f"rows: {result.row_count}", render_grid(result.columns, result.rows)]
        if result.truncated:
            parts.append(f"... truncated at {result.row_count} rows (row limit {self.row_limit})")
        return "\n\n".join(parts)

    def render_schema(self, snapshot: SchemaSnapshot, fmt: OutputFormat = OutputFormat.TABLE) -> str:
        if OutputFormat(fmt) == OutputFormat.RAW:
            return snapshot.model_dump_json()

        header = f"{snapshot.dialect}: {len(snapshot.tables)} tables"
        if not snapshot.tables:
            return f"{header}\n\n(no tables)"

        blocks = [header]
        for table in snapshot.tables:
            pk = set(table.primary_key)
            fks = {fk.column: f"{fk.referred_table}.{fk.referred_column}" for fk in table.foreign_keys}
            rows = [
                (
                    col.name,
                    col.declared_type,
                    "yes" if col.nullable else "no",
                    "PK" if col.name in pk else "",
                    fks.get(col.name, ""),
                )
                for col in table.columns
            ]
            grid = render_grid(("column", "type", "nullable", "key", "references"), rows)
            blocks.append(f"TABLE {table.name}\n{grid}")
        return "\n\n".join(blocks)
