"""Runs the nlql HTTP service under uvicorn."""

import uvicorn
from fastapi import FastAPI


def run_server(app: FastAPI, host: str = "127.0.0.1", port: int = 3000) -> None:
    # uvicorn drains in-flight requests before the lifespan disposes the pool.
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level="info",
        timeout_graceful_shutdown=30,
    )
