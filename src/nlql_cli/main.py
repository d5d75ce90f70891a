#!/usr/bin/env python3
"""Command line interface for nlql."""
from typing import Optional

import typer
from typing_extensions import Annotated

from nlql.common.logger import configure_logging
from nlql.common.settings import settings
from nlql.formatting.formatter import OutputFormat
from nlql.pipeline.runner import PipelineConfig
from nlql.validation.models import ExecutionMode
from nlql_cli.commands.query import run_query
from nlql_cli.commands.schema import show_schema
from nlql_cli.commands.serve import serve_command
from nlql_cli.common.decorators import handle_cli_errors

app = typer.Typer(
    name="nlql",
    help="Talk to your database in plain English.",
    no_args_is_help=True,
    add_completion=False,
)

# Shared Options
DbOption = Annotated[
    Optional[str],
    typer.Option("--db", "-d", envvar="DATABASE_URL", help="Database connection URL or SQLite file path"),
]
OutputOption = Annotated[
    OutputFormat,
    typer.Option("--output", "-o", case_sensitive=False, help="Output format: table for humans, raw for JSON"),
]
AllowMutationsOption = Annotated[
    bool,
    typer.Option("--allow-mutations", help="Permit INSERT/UPDATE/DELETE and schema changes"),
]


def _config(ctx: typer.Context, db: Optional[str]) -> PipelineConfig:
    # Callback may have updated settings
    return PipelineConfig.from_settings(settings, database_url=db, **(ctx.obj or {}))


@app.callback()
def global_callback(
    ctx: typer.Context,
    env: Annotated[Optional[str], typer.Option("--env", "-e", help="Environment name (loads .env.<env>).")] = None,
    log_level: Annotated[Optional[str], typer.Option("--log-level", help="Logging level (default: NLQL_LOG_LEVEL).")] = None,
    json_logs: Annotated[bool, typer.Option("--json-logs", help="Emit logs as JSON lines.")] = False,
    provider: Annotated[
        Optional[str],
        typer.Option("--provider", "-p", help="AI provider: openai (gpt, chatgpt) or anthropic (claude). Default: NLQL_LLM_PROVIDER."),
    ] = None,
    api_key: Annotated[
        Optional[str],
        typer.Option("--api-key", "-k", help="API key for the AI provider (overrides OPENAI_API_KEY / ANTHROPIC_API_KEY)."),
    ] = None,
):
    """
    nlql CLI Entry Point.
    """
    if env:
        settings.configure_env(env)
    configure_logging(level=log_level or settings.log_level, json_format=json_logs or settings.log_json)
    ctx.obj = {"llm_provider": provider, "llm_api_key": api_key}


@app.command()
@handle_cli_errors
def query(
    ctx: typer.Context,
    question: Annotated[str, typer.Argument(help="Natural language question")],
    db: DbOption = None,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Translate and validate only, never execute")] = False,
    output: OutputOption = OutputFormat.TABLE,
    allow_mutations: AllowMutationsOption = False,
    confirm: Annotated[bool, typer.Option("--confirm", "-c", help="Ask before running the SQL")] = False,
):
    """
    Translate a question to SQL, validate it and run it.
    """
    run_query(
        _config(ctx, db),
        question,
        dry_run=dry_run,
        output=output,
        allow_mutations=allow_mutations,
        confirm=confirm,
    )


@app.command()
@handle_cli_errors
def schema(
    ctx: typer.Context,
    db: DbOption = None,
    output: OutputOption = OutputFormat.TABLE,
):
    """
    Show the tables and columns nlql sees.
    """
    show_schema(_config(ctx, db), output=output)


@app.command()
@handle_cli_errors
def serve(
    ctx: typer.Context,
    db: DbOption = None,
    port: Annotated[int, typer.Option("--port", "-p", help="Port number")] = 3000,
    host: Annotated[str, typer.Option("--host", help="Host to bind")] = "127.0.0.1",
    allow_mutations: AllowMutationsOption = False,
):
    """
    Start the HTTP service.
    """
    config = _config(ctx, db)
    if allow_mutations:
        config = config.model_copy(update={"execution_mode": ExecutionMode.ALLOW_MUTATIONS})
    serve_command(config, host=host, port=port)


def main():
    app()


if __name__ == "__main__":
    main()
