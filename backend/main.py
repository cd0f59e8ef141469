"""Inventory Ingest Service — FastAPI application entry point.

Initializes the graph store and event bus connections on startup and
registers API routers.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend.core import graph_client, redis_client
from backend.core.config import settings
from backend.api import health, transaction_files

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize service connections on startup, close on shutdown."""
    logger.info("Starting inventory ingest backend...")

    # Initialize NebulaGraph connection pool and make sure the schema exists
    try:
        graph_client.init_graph_pool()
        graph_client.ensure_schema()
    except Exception as e:
        logger.error(f"Failed to connect to NebulaGraph: {e}")

    # Initialize Redis client
    try:
        redis_client.init_redis_client()
    except Exception as e:
        logger.error(f"Failed to connect to Redis: {e}")

    logger.info("Inventory ingest backend ready")
    yield

    # Shutdown
    logger.info("Shutting down inventory ingest backend...")
    graph_client.close_graph_pool()
    redis_client.close_redis_client()
    logger.info("Inventory ingest backend stopped")


app = FastAPI(
    title="Inventory Ingest Service",
    version="0.1.0",
    description="Ingests warehouse transaction files (CSV / Excel) into locations, "
                "items and transaction records.",
    lifespan=lifespan,
)

# --- Top-level routes ---
app.include_router(health.router, prefix="/api", tags=["health"])

# --- Company/warehouse-scoped routes: /api/c/{company_id}/w/{warehouse_id}/... ---
app.include_router(
    transaction_files.router,
    prefix="/api/c/{company_id}/w/{warehouse_id}",
    tags=["transaction-files"],
)
