"""Service entry point: FastAPI app with health checks and lifecycle hooks."""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import get_settings
from .database import check_database_health, dispose_engine

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def validate_environment():
    """Validate all required environment variables on startup."""
    try:
        settings = get_settings()
        logging.getLogger().setLevel(settings.log_level)
        logger.info("Environment variables validated successfully")
        return settings
    except ValidationError as e:
        logger.error("ERROR: Missing or invalid environment variables:")
        logger.error(str(e))
        sys.exit(1)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown."""
    logger.info("Starting Recipe Book...")
    validate_environment()
    logger.info("Recipe Book started successfully")

    yield

    logger.info("Shutting down Recipe Book...")
    dispose_engine()
    logger.info("Recipe Book shutdown complete")


app = FastAPI(
    title="Recipe Book",
    description="Recipe and dietary preference storage",
    version="1.0.0",
    lifespan=lifespan,
)


@app.get("/health")
async def health_check():
    """Health check endpoint.

    Returns 503 when the database cannot be reached.
    """
    if check_database_health():
        return {"status": "healthy", "database": "connected"}
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "unhealthy", "database": "disconnected"},
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Recipe Book",
        "status": "running",
        "version": "1.0.0",
    }
