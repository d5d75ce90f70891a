from nlql.datasources.database import Database
from nlql.formatting.formatter import OutputFormat, ResultFormatter
from nlql.pipeline.runner import PipelineConfig
from nlql.schema.introspector import SchemaIntrospector
from nlql.schema.models import SchemaSnapshot
from nlql_cli.console import print_output


def show_schema(config: PipelineConfig, output: OutputFormat = OutputFormat.TABLE) -> SchemaSnapshot:
    """Introspects the database and prints its tables. Needs no model credentials."""
    database = Database(
        config.database_url or "",
        pool_size=config.pool_size,
        max_overflow=config.pool_max_overflow,
        pool_timeout_sec=config.pool_timeout_sec,
    )
    with database:
        snapshot = SchemaIntrospector().introspect(database)

    print_output(ResultFormatter(row_limit=config.row_limit).render_schema(snapshot, output))
    return snapshot
