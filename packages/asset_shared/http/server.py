"""Minimal FastAPI and uvicorn helpers for asset HTTP surfaces."""

from __future__ import annotations

import uvicorn
from fastapi import FastAPI


def create_app(*, title: str = "assets", version: str = "0.1.0") -> FastAPI:
    """Create a FastAPI app with project defaults."""
    return FastAPI(title=title, version=version)


def run_app(
    app: FastAPI,
    *,
    host: str = "127.0.0.1",
    port: int = 8000,
    log_level: str = "info",
) -> None:
    """Run one FastAPI app through uvicorn."""
    uvicorn.run(app, host=host, port=port, log_level=log_level)
