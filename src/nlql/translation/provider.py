from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, ConfigDict

from nlql.common.cancellation import RequestDeadline
from .prompt_builder import TranslationPrompt


class CandidateSQL(BaseModel):
    """SQL text proposed by a provider, not yet validated.

    Attributes:
        sql (str): The extracted statement.
        raw_response (str): The unmodified model output.
        model (str): Identifier of the model that produced it.
        latency_ms (float): Wall time of the successful attempt.
    """

    sql: str
    raw_response: str = ""
    model: str = ""
    latency_ms: float = 0.0

    model_config = ConfigDict(frozen=True)


class TranslationProvider(ABC):
    """Turns a TranslationPrompt into a CandidateSQL.

    Implementations raise ``TranslationError`` on failure and must honour the
    deadline: no attempt or backoff sleep may outlive it.
    """

    name: str = "provider"

    @abstractmethod
    def translate(self, prompt: TranslationPrompt, deadline: Optional[RequestDeadline] = None) -> CandidateSQL:
        ...
