from typing import Optional

import typer
from rich.markup import escape

from nlql.formatting.formatter import OutputFormat
from nlql.pipeline.outcome import PipelineOutcome, Rejected
from nlql.pipeline.runner import Pipeline, PipelineConfig
from nlql.pipeline.state import PipelineRequest
from nlql.validation.models import ExecutionMode, StatementClassification
from nlql_cli.console import err_console, print_output, print_warning


def ask_confirmation(sql: str, classification: StatementClassification) -> bool:
    """Shows the statement about to run and asks the user to approve it."""
    err_console.print(f"[info]sql:[/info] {escape(sql)}", highlight=False)
    err_console.print(f"[info]risk:[/info] {classification.risk.value}")
    for warning in classification.warnings:
        print_warning(warning)
    return typer.confirm("Run this statement?", default=False, err=True)


def run_query(
    config: PipelineConfig,
    question: str,
    dry_run: bool = False,
    output: OutputFormat = OutputFormat.TABLE,
    allow_mutations: bool = False,
    confirm: bool = False,
) -> PipelineOutcome:
    """Runs one question through the pipeline and prints the rendered outcome."""
    mode = ExecutionMode.ALLOW_MUTATIONS if allow_mutations else config.execution_mode
    pipeline = Pipeline.from_config(config, confirm=ask_confirmation if confirm else None)

    with pipeline:
        outcome = pipeline.run(PipelineRequest(
            question=question,
            dry_run=dry_run,
            execution_mode=mode,
            output_format=output,
        ))

    print_output(outcome.rendered)
    if isinstance(outcome, Rejected) and output == OutputFormat.RAW:
        print_warning(f"rejected: {outcome.reason}")
    return outcome
