"""
Polymarket PnL API Entry Point
"""
import logging
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from api.dependencies import initialize_dependencies, cleanup_dependencies
from api.routes import health, dashboard, pnl, users
from api.exceptions import APIException
from config.settings import settings
from utils.rich_logging import setup_logging

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown"""
    # Startup
    logger.info("Starting Polymarket PnL API...")
    if not hasattr(app.state, "engine"):
        initialize_dependencies(app)
    yield
    # Shutdown
    logger.info("Shutting down Polymarket PnL API...")
    await cleanup_dependencies(app)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Polymarket PnL API",
        description="Reconstructed profit-and-loss, PnL history and trade attribution for Polymarket users",
        version="1.0.0",
        lifespan=lifespan
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(APIException)
    async def api_exception_handler(request: Request, exc: APIException):
        """Handle custom API exceptions"""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": exc.error_code or "API_ERROR",
                    "message": exc.detail
                }
            }
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions"""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "INTERNAL_SERVER_ERROR",
                    "message": "Failed to fetch user data"
                }
            }
        )

    app.include_router(health.router)
    app.include_router(dashboard.router)
    app.include_router(pnl.router)
    app.include_router(users.router)

    @app.get("/api/v1")
    async def api_info():
        """API information endpoint"""
        return {
            "name": "Polymarket PnL API",
            "version": "1.0.0",
            "endpoints": {
                "health": "/health",
                "dashboard": "/api/v1/dashboard/{username}",
                "pnl": "/api/v1/pnl/{wallet}",
                "users": "/api/v1/users/search?q=",
            }
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower()
    )
