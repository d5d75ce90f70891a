from __future__ import annotations

from typing import List, Optional, Tuple

import sqlglot
from sqlglot import expressions as exp
from sqlglot.errors import ParseError, TokenError
from sqlglot.tokens import Token, TokenType

from nlql.common.dialects import sqlglot_dialect
from nlql.common.logger import get_logger
from nlql.schema.models import SchemaSnapshot
from nlql.translation.provider import CandidateSQL
from .models import (
    ExecutionMode,
    PolicyDecision,
    RiskLevel,
    StatementCategory,
    StatementClassification,
)

logger = get_logger("validator")


def _is_literal(token: Token) -> bool:
    name = token.token_type.name
    return name == "NUMBER" or name.endswith("STRING")


class StatementValidator:
    """Classifies candidate SQL and applies the execution policy.

    Classification is structural and conservative: anything the validator
    cannot confidently place in a category is ``unparseable`` and therefore
    never executed. Comments and string literals are handled by the sqlglot
    tokenizer, so a ``;`` or keyword inside them has no effect.

    Every statement is parsed and its category comes from the parsed root,
    never from the leading keyword alone. Data changes must target a table
    present in the snapshot.
    """

    def classify(self, candidate: CandidateSQL, snapshot: SchemaSnapshot) -> StatementClassification:
        return self.classify_sql(candidate.sql, snapshot)

    def classify_sql(self, sql: str, snapshot: SchemaSnapshot) -> StatementClassification:
        dialect = sqlglot_dialect(snapshot.dialect)
        try:
            tokens = sqlglot.tokenize(sql, read=dialect)
        except TokenError as e:
            return self._unparseable("", f"tokenizer error: {e}")

        significant = [t for t in tokens if t.token_type != TokenType.SEMICOLON]
        if not significant:
            return self._unparseable("", "empty statement")

        leading = self._leading_keyword(tokens)
        tables = self._referenced_tables(tokens, snapshot)

        if self._has_trailing_statement(tokens):
            return StatementClassification(
                category=StatementCategory.MULTI_STATEMENT,
                statement_type=leading,
                referenced_tables=tables,
                risk=RiskLevel.DANGER,
                warnings=("contains more than one statement",),
            )

        category, parse_error, root = self._categorize(sql, dialect, snapshot)
        if category == StatementCategory.UNPARSEABLE:
            return self._unparseable(leading, parse_error, tables)

        risk, warnings = self._assess_risk(category, leading, tables, root)
        classification = StatementClassification(
            category=category,
            statement_type=leading,
            referenced_tables=tables,
            risk=risk,
            warnings=warnings,
        )
        logger.debug(f"Classified {leading} statement as {category.value} (risk={risk.value})")
        return classification

    def decide(self, classification: StatementClassification, mode: ExecutionMode) -> PolicyDecision:
        """Applies the execution policy to a classification.

        Args:
            classification (StatementClassification): Output of :meth:`classify`.
            mode (ExecutionMode): The mode requested for this run.

        Returns:
            PolicyDecision: Whether the statement may run, and why.
        """
        category = classification.category
        if category == StatementCategory.READ_ONLY:
            return PolicyDecision(permitted=True, reason="read-only statement")

        if classification.is_mutation:
            if mode == ExecutionMode.ALLOW_MUTATIONS:
                return PolicyDecision(permitted=True, reason=f"{classification.statement_type} permitted by allow_mutations")
            what = "schema change" if category == StatementCategory.SCHEMA_CHANGING else "data change"
            return PolicyDecision(
                permitted=False,
                reason=(
                    f"mutation not permitted: {classification.statement_type} is a {what} "
                    f"and the execution mode is read_only (use --allow-mutations)"
                ),
            )

        if category == StatementCategory.MULTI_STATEMENT:
            return PolicyDecision(permitted=False, reason="multiple statements are never executed")

        detail = f": {classification.parse_error}" if classification.parse_error else ""
        return PolicyDecision(permitted=False, reason=f"statement could not be classified{detail}")

    def validate(
        self,
        candidate: CandidateSQL,
        snapshot: SchemaSnapshot,
        mode: ExecutionMode = ExecutionMode.READ_ONLY,
    ) -> Tuple[StatementClassification, PolicyDecision]:
        classification = self.classify(candidate, snapshot)
        return classification, self.decide(classification, mode)

    def _unparseable(
        self, leading: str, reason: Optional[str], tables: Tuple[str, ...] = ()
    ) -> StatementClassification:
        return StatementClassification(
            category=StatementCategory.UNPARSEABLE,
            statement_type=leading,
            referenced_tables=tables,
            risk=RiskLevel.MODERATE,
            warnings=("statement could not be parsed",),
            parse_error=reason,
        )

    @staticmethod
    def _leading_keyword(tokens: List[Token]) -> str:
        for token in tokens:
            if token.token_type in (TokenType.L_PAREN, TokenType.SEMICOLON):
                continue
            return token.text.upper()
        return ""

    @staticmethod
    def _has_trailing_statement(tokens: List[Token]) -> bool:
        seen_content = False
        seen_separator = False
        for token in tokens:
            if token.token_type == TokenType.SEMICOLON:
                seen_separator = seen_content
                continue
            if seen_separator:
                return True
            seen_content = True
        return False

    @staticmethod
    def _referenced_tables(tokens: List[Token], snapshot: SchemaSnapshot) -> Tuple[str, ...]:
        by_lower = {name.lower(): name for name in snapshot.table_names}
        found: List[str] = []
        for token in tokens:
            if _is_literal(token):
                continue
            name = by_lower.get(token.text.lower())
            if name and name not in found:
                found.append(name)
        return tuple(found)

    @staticmethod
    def _parse(sql: str, dialect: Optional[str]) -> exp.Expression:
        expression = sqlglot.parse_one(sql.strip().rstrip(";"), read=dialect)
        if expression is None:
            raise ParseError("no expression was parsed")
        return expression

    @staticmethod
    def _target_table(root: exp.Expression) -> Optional[str]:
        target = root.this
        if isinstance(target, exp.Table):
            return target.name
        if isinstance(target, exp.Expression):
            table = target.find(exp.Table)
            if table is not None:
                return table.name
        return None

    def _categorize(
        self, sql: str, dialect: Optional[str], snapshot: SchemaSnapshot
    ) -> Tuple[StatementCategory, Optional[str], Optional[exp.Expression]]:
        try:
            root = self._parse(sql, dialect)
        except (ParseError, TokenError) as e:
            return StatementCategory.UNPARSEABLE, str(e), None

        if isinstance(root, exp.Command):
            return StatementCategory.UNPARSEABLE, f"unrecognized statement: {root.sql()[:60]}", root

        if isinstance(root, QUERY_EXPRESSIONS):
            if root.find(*DML_EXPRESSIONS):
                return StatementCategory.MUTATING, None, root
            if root.find(exp.Into):
                return StatementCategory.SCHEMA_CHANGING, None, root
            return StatementCategory.READ_ONLY, None, root

        if isinstance(root, DML_EXPRESSIONS):
            target = self._target_table(root)
            if target is None:
                return StatementCategory.UNPARSEABLE, f"{type(root).__name__.upper()} without a target table", root
            if snapshot.get_table(target) is None:
                return StatementCategory.UNPARSEABLE, f"unknown target table: {target}", root
            return StatementCategory.MUTATING, None, root

        if isinstance(root, DDL_EXPRESSIONS):
            return StatementCategory.SCHEMA_CHANGING, None, root

        return StatementCategory.UNPARSEABLE, f"unsupported statement type: {type(root).__name__}", root

    def _assess_risk(
        self,
        category: StatementCategory,
        leading: str,
        tables: Tuple[str, ...],
        root: exp.Expression,
    ) -> Tuple[RiskLevel, Tuple[str, ...]]:
        if category == StatementCategory.READ_ONLY:
            return RiskLevel.SAFE, ()

        target = tables[0] if tables else "the target table"
        if category == StatementCategory.SCHEMA_CHANGING:
            return RiskLevel.DANGER, (f"{leading} changes the database schema",)

        if isinstance(root, (exp.Delete, exp.Update)) and root.args.get("where") is None:
            verb = "deletes" if isinstance(root, exp.Delete) else "updates"
            return RiskLevel.DANGER, (f"{leading} without WHERE {verb} every row in {target}",)

        return RiskLevel.MODERATE, (f"{leading} modifies data in {target}",)
