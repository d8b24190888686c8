from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.runner import build_default_runner


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    runner = build_default_runner()
    try:
        yield
    finally:
        runner.shutdown()
        build_default_runner.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Sensor Fleet Simulator",
        description="Runs simulated sensor fleets in the background and reports cycle outcomes.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
