from .prompt_builder import HistoryTurn, PromptBuilder, TranslationPrompt, TranslationRequest
from .provider import CandidateSQL, TranslationProvider
from .extraction import extract_sql
from .registry import create_provider

__all__ = [
    "HistoryTurn",
    "PromptBuilder",
    "TranslationPrompt",
    "TranslationRequest",
    "CandidateSQL",
    "TranslationProvider",
    "extract_sql",
    "create_provider",
]
