from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from app.api import router
from app.web import router as web_router
from logging_config import configure_logging
from services.processor import build_default_processor

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent.parent / "static"


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    processor = build_default_processor()
    logger.info(
        "NEM12 generator ready",
        extra={
            "bucket": processor.bucket.name,
            "table": processor.table.name,
            "workers": processor.workers,
            "chunk_rows": processor.chunk_rows,
        },
    )
    try:
        yield
    finally:
        # queued jobs are cancelled, running ones finish in the background
        logger.info("NEM12 generator stopping", extra={"pending_jobs": processor.pending_jobs})
        processor.shutdown()
        build_default_processor.cache_clear()


def create_app() -> FastAPI:
    """Build the API and UI application around the shared processor."""
    configure_logging()
    app = FastAPI(
        title="NEM12 SQL Generator",
        description="Turns NEM12 interval-data files into meter_readings INSERT statements.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")
    app.include_router(router)
    app.include_router(web_router)
    return app


app = create_app()
