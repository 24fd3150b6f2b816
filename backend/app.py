"""
Snowbasin Backend API - FastAPI Application

Main FastAPI application with CORS, lifespan events, error handlers and
route registration.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.api import chat, chats, health, share
from backend.dependencies import cleanup_resources, initialize_resources
from src.core.errors import SnowbasinError
from src.utilities.config import get_config
from src.utilities.utils import setup_logging

logger = logging.getLogger(__name__)


# ========== LIFESPAN EVENTS ==========
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan events.

    Startup:
        - Load configuration and logging
        - Open the chat store
        - Create model and transit clients

    Shutdown:
        - Close database connections
    """
    logger.info("🚀 Starting Snowbasin Backend API...")

    try:
        initialize_resources()
        logger.info("✅ Resources initialized successfully")
    except Exception as e:
        logger.error(f"❌ Failed to initialize resources: {e}")
        raise

    logger.info("=" * 60)
    logger.info("Snowbasin Backend API is ready!")
    logger.info("=" * 60)

    yield

    logger.info("🛑 Shutting down Snowbasin Backend API...")
    cleanup_resources()
    logger.info("✅ Cleanup complete")


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    config = get_config(from_env=True)
    setup_logging(config)

    app = FastAPI(
        title="Snowbasin Chat API",
        description="Streaming chat assistant for Utah snow and transit questions",
        version=config.version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # ========== CORS MIDDLEWARE ==========
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ========== EXCEPTION HANDLERS ==========
    @app.exception_handler(SnowbasinError)
    async def snowbasin_exception_handler(request: Request, exc: SnowbasinError):
        """Map domain errors to their status code with a JSON error body."""
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler for uncaught errors."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Internal Server Error"})

    # ========== ROOT ENDPOINT ==========
    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint - API information."""
        return {
            "name": "Snowbasin Chat API",
            "version": config.version,
            "status": "running",
            "docs": "/docs",
            "endpoints": {
                "health": "/health",
                "chat": "/chat-stream",
                "chats": "/chats, /chats/{id}",
                "share": "/share/{shareId}",
            },
        }

    # ========== ROUTE REGISTRATION ==========
    app.include_router(health.router)
    app.include_router(chat.router)
    app.include_router(chats.router)
    app.include_router(share.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    # Run with: python -m backend.app
    # Or: uvicorn backend.app:app --reload --host 0.0.0.0 --port 8000
    uvicorn.run(
        "backend.app:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
