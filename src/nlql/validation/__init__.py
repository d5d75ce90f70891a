from .models import (
    EXECUTABLE_CATEGORIES,
    ExecutionMode,
    PolicyDecision,
    RiskLevel,
    StatementCategory,
    StatementClassification,
)
from .validator import StatementValidator

__all__ = [
    "EXECUTABLE_CATEGORIES",
    "ExecutionMode",
    "PolicyDecision",
    "RiskLevel",
    "StatementCategory",
    "StatementClassification",
    "StatementValidator",
]
