"""FastAPI application entry point."""

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from cpq.api.v1 import board, clients, dashboard, health, insights, products, quotes
from cpq.api.v1.board.dependencies import board_registry
from cpq.config import settings
from cpq.db import dispose_engine
from cpq.logging import bind_log_context, clear_log_context, setup_logging
from cpq.models.base import new_ulid
from cpq.utils.redis import redis_client

# Configure logging before anything else
setup_logging()

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup/shutdown events."""
    logger.info("Starting CPQ API", debug=settings.debug)

    yield

    logger.info("Shutting down CPQ API", open_board_sessions=len(board_registry))
    # Let in-flight board writes finish before the engine goes away
    await board_registry.close_all()
    await dispose_engine()
    await redis_client.aclose()
    logger.info("Database and Redis connections closed")


app = FastAPI(
    title="CPQ API",
    description="Quotes, status board, e-mail delivery and business insights",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.backend_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_log_context(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    """Start each request with a fresh log context carrying its request id."""
    clear_log_context()
    request_id = request.headers.get("x-request-id") or new_ulid()
    bind_log_context(request_id=request_id)
    response = await call_next(request)
    response.headers["x-request-id"] = request_id
    return response


# API routes
app.include_router(health.router, prefix="/api/v1", tags=["health"])
app.include_router(clients.router, prefix="/api/v1")
app.include_router(products.router, prefix="/api/v1")
app.include_router(quotes.router, prefix="/api/v1")
app.include_router(board.router, prefix="/api/v1")
app.include_router(dashboard.router, prefix="/api/v1")
app.include_router(insights.router, prefix="/api/v1")
