"""
CreatorFlow Sync - Main Application Entry Point

FastAPI application serving the optimistic sync layer over the hosted
PostgreSQL store.
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from .database import init_database, close_database, get_database
from .database.exceptions import EntityNotFoundError, ValidationError
from .utils.background_tasks import drain_background_tasks, pending_background_tasks
from .utils.datetime_utils import get_local_now
from .web.routes import router as api_router, get_registry

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown."""
    # Startup
    logger.info(f"Starting {settings.app_name}...")

    if await init_database():
        logger.info("PostgreSQL database initialized")
    else:
        logger.warning("PostgreSQL not available, remote writes will fail until it is configured")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")

    pending = pending_background_tasks()
    if pending:
        logger.info(f"Waiting for {pending} remote writes to settle")
    await get_registry().drain()
    await drain_background_tasks()

    await close_database()
    logger.info("Database connection closed")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Optimistic sync layer for the CreatorFlow content dashboard",
    version=VERSION,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": VERSION
    }


@app.get("/health")
async def health_check():
    """Detailed health check endpoint."""
    db_health = {"status": "not_configured"}
    try:
        db = get_database()
        db_health = await db.health_check()
    except Exception as e:
        db_health = {"status": "error", "error": str(e)}

    return {
        "status": "healthy",
        "timestamp": get_local_now().isoformat(),
        "services": {
            "database": db_health.get("status", "unknown"),
            "pending_writes": pending_background_tasks(),
        }
    }


# Error handlers
@app.exception_handler(EntityNotFoundError)
async def not_found_handler(request: Request, exc: EntityNotFoundError):
    return JSONResponse(status_code=404, content={"error": "Not found", "detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": "Invalid request", "detail": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "detail": str(exc)}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "creatorflow.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
