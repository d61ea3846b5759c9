from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.receiver import build_default_receiver


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    receiver = build_default_receiver()
    receiver.activate()
    try:
        yield
    finally:
        receiver.shutdown()
        build_default_receiver.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Dive Timeline",
        description="Receives recorded free-dive summaries and serves reconciled timelines.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app


app = create_app()
