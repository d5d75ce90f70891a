"""
Graph nodes. Each node performs one stage and returns a partial state update.

A node that fails stores the typed error in ``error`` and moves the state to
``failed``; the graph routes straight to END from there.
"""
from __future__ import annotations

from typing import Any, Callable, Dict

from nlql.common.errors import NlqlError, PipelineStage
from nlql.common.logger import get_logger
from nlql.datasources.database import Database
from nlql.execution.executor import QueryExecutor
from nlql.formatting.formatter import ResultFormatter
from nlql.pipeline.outcome import Executed, Rejected, Translated
from nlql.pipeline.state import GraphState
from nlql.schema.models import SchemaSnapshot
from nlql.translation.prompt_builder import PromptBuilder, TranslationRequest
from nlql.translation.provider import TranslationProvider
from nlql.validation.models import PolicyDecision
from nlql.validation.validator import StatementValidator

logger = get_logger("pipeline")


def _failed(stage: PipelineStage, error: NlqlError) -> Dict[str, Any]:
    error.stage = stage
    logger.error(f"Stage {stage.value} failed: {error}")
    return {"stage": PipelineStage.FAILED, "stages": [stage, PipelineStage.FAILED], "error": error}


class IntrospectNode:
    def __init__(self, database: Database, load_snapshot: Callable[[Database], SchemaSnapshot]):
        self.database = database
        self.load_snapshot = load_snapshot

    def __call__(self, state: GraphState) -> Dict[str, Any]:
        try:
            snapshot = self.load_snapshot(self.database)
        except NlqlError as e:
            return _failed(PipelineStage.INTROSPECTING, e)
        return {
            "stage": PipelineStage.INTROSPECTING,
            "stages": [PipelineStage.INTROSPECTING],
            "snapshot": snapshot,
        }


class TranslateNode:
    """Builds the prompt and asks the provider for a candidate statement."""

    def __init__(self, prompt_builder: PromptBuilder, provider: TranslationProvider):
        self.prompt_builder = prompt_builder
        self.provider = provider

    def __call__(self, state: GraphState) -> Dict[str, Any]:
        request = TranslationRequest(
            question=state.request.question,
            snapshot=state.snapshot,
            history=state.request.history,
        )
        prompt = self.prompt_builder.build(request)
        try:
            candidate = self.provider.translate(prompt, state.deadline)
        except NlqlError as e:
            return _failed(PipelineStage.TRANSLATING, e)

        logger.info(f"Candidate SQL: {candidate.sql}")
        return {
            "stage": PipelineStage.TRANSLATING,
            "stages": [PipelineStage.TRANSLATING],
            "candidate": candidate,
        }


class ValidateNode:
    def __init__(self, validator: StatementValidator):
        self.validator = validator

    def __call__(self, state: GraphState) -> Dict[str, Any]:
        classification, decision = self.validator.validate(
            state.candidate, state.snapshot, state.request.execution_mode
        )
        stages = [PipelineStage.VALIDATING]
        if decision.permitted and state.request.dry_run:
            stages.append(PipelineStage.DRY_RUN_DONE)
        if not decision.permitted:
            logger.warning(f"Statement rejected: {decision.reason}")
        return {
            "stage": stages[-1],
            "stages": stages,
            "classification": classification,
            "decision": decision,
        }


class ExecuteNode:
    """Runs a permitted statement, after the optional confirmation callback."""

    def __init__(self, executor: QueryExecutor):
        self.executor = executor

    def __call__(self, state: GraphState) -> Dict[str, Any]:
        sql = state.candidate.sql
        if state.confirm is not None and not state.confirm(sql, state.classification):
            logger.info("Execution declined by user")
            return {"decision": PolicyDecision(permitted=False, reason="declined")}

        try:
            result = self.executor.execute(sql, state.classification, state.deadline)
        except NlqlError as e:
            return _failed(PipelineStage.EXECUTING, e)
        return {
            "stage": PipelineStage.EXECUTING,
            "stages": [PipelineStage.EXECUTING],
            "result": result,
        }


class FormatNode:
    def __init__(self, formatter: ResultFormatter):
        self.formatter = formatter

    def __call__(self, state: GraphState) -> Dict[str, Any]:
        common = {
            "sql": state.candidate.sql,
            "classification": state.classification,
            "request_id": state.request.request_id,
        }
        if state.result is not None:
            outcome = Executed(result=state.result, **common)
        elif state.decision is not None and not state.decision.permitted:
            outcome = Rejected(reason=state.decision.reason, **common)
        else:
            outcome = Translated(**common)

        rendered = self.formatter.render(outcome, state.request.output_format)
        outcome = outcome.model_copy(update={"rendered": rendered})
        return {
            "stage": PipelineStage.DONE,
            "stages": [PipelineStage.FORMATTING, PipelineStage.DONE],
            "outcome": outcome,
        }


def route_after_validation(state: GraphState) -> str:
    if state.decision is None or not state.decision.permitted or state.request.dry_run:
        return "format"
    return "execute"


def route_unless_failed(next_node: str) -> Callable[[GraphState], str]:
    def _route(state: GraphState) -> str:
        return "end" if state.error is not None else next_node

    return _route
