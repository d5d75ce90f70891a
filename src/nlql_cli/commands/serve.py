from nlql.pipeline.runner import Pipeline, PipelineConfig
from nlql_cli.console import print_success


def serve_command(config: PipelineConfig, host: str, port: int) -> None:
    """Starts the HTTP service. Configuration errors surface before the server binds."""
    from nlql_api.main import create_app
    from nlql_api.server import run_server

    pipeline = Pipeline.from_config(config)
    app = create_app(config, pipeline=pipeline)

    print_success(f"server running at http://{host}:{port} ({pipeline.database})")
    run_server(app, host=host, port=port)
