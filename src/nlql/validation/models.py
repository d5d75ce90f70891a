from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class StatementCategory(str, Enum):
    READ_ONLY = "read_only"
    MUTATING = "mutating"
    SCHEMA_CHANGING = "schema_changing"
    MULTI_STATEMENT = "multi_statement"
    UNPARSEABLE = "unparseable"


EXECUTABLE_CATEGORIES = {
    StatementCategory.READ_ONLY,
    StatementCategory.MUTATING,
    StatementCategory.SCHEMA_CHANGING,
}


class RiskLevel(str, Enum):
    SAFE = "safe"
    MODERATE = "moderate"
    DANGER = "danger"


class ExecutionMode(str, Enum):
    """Whether a run may execute statements that change data or schema."""
    READ_ONLY = "read_only"
    ALLOW_MUTATIONS = "allow_mutations"


class StatementClassification(BaseModel):
    """Structural classification of one candidate statement.

    Attributes:
        category (StatementCategory): What the statement would do if executed.
        statement_type (str): Leading keyword, upper-cased (``SELECT``, ``DELETE``...).
        referenced_tables (Tuple[str, ...]): Snapshot tables mentioned, in order of first appearance.
        risk (RiskLevel): Coarse danger rating shown to the user.
        warnings (Tuple[str, ...]): Human readable notes about the statement.
        parse_error (Optional[str]): Why the statement was deemed unparseable.
    """

    category: StatementCategory
    statement_type: str = ""
    referenced_tables: Tuple[str, ...] = Field(default_factory=tuple)
    risk: RiskLevel = RiskLevel.SAFE
    warnings: Tuple[str, ...] = Field(default_factory=tuple)
    parse_error: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_mutation(self) -> bool:
        return self.category in (StatementCategory.MUTATING, StatementCategory.SCHEMA_CHANGING)


class PolicyDecision(BaseModel):
    permitted: bool
    reason: str

    model_config = ConfigDict(frozen=True)
