"""
VANTAGE API

FastAPI application exposing engine metrics, universe promotion, variant
rankings and engine comparison.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vantage.api.routes import comparison, engines, universe, variants
from vantage.core.exceptions import VantageDataError
from vantage.storage.database import check_database_health_async, close_database_async, init_db_async

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifecycle management."""
    logger.info("Starting VANTAGE API...")

    try:
        await init_db_async()
        logger.info("Database initialized")
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise

    yield

    logger.info("Shutting down VANTAGE API...")
    await close_database_async()
    logger.info("Database connections closed")


app = FastAPI(
    title="VANTAGE API",
    version=API_VERSION,
    description="Engine performance aggregation and universe promotion",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.exception_handler(VantageDataError)
async def data_exception_handler(request: Request, exc: VantageDataError):
    logger.error(f"Data error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=502,
        content={"error": "Upstream data error", "detail": str(exc)},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "detail": str(exc)},
    )


app.include_router(engines.router)
app.include_router(universe.router)
app.include_router(variants.router)
app.include_router(comparison.router)


@app.get("/", tags=["root"])
async def root():
    return {"service": "VANTAGE API", "version": API_VERSION, "status": "operational"}


@app.get("/health", tags=["health"])
async def health():
    db_health = await check_database_health_async()
    return {
        "status": "healthy" if db_health.get("healthy") else "degraded",
        "service": "vantage",
        "database": db_health,
    }
