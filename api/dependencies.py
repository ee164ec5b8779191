"""
FastAPI Dependencies
Shared dependencies for dependency injection

The engine context (cache, throttle, rate limiter, clients) is built once
per application in the lifespan and kept on app.state.
"""
import logging
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from clients.functions.dashboard import DashboardService
from clients.functions.data import EngineContext

logger = logging.getLogger(__name__)


def initialize_dependencies(app: FastAPI, context: EngineContext = None) -> None:
    """Initialize all dependencies (called on startup)"""
    logger.info("Initializing API dependencies...")
    context = context or EngineContext.create()
    app.state.engine = context
    app.state.dashboard_service = DashboardService(context)
    logger.info("API dependencies initialized")


async def cleanup_dependencies(app: FastAPI) -> None:
    """Cleanup dependencies (called on shutdown)"""
    logger.info("Cleaning up API dependencies...")
    context = getattr(app.state, "engine", None)
    if context is not None:
        await context.aclose()


def get_engine(request: Request) -> EngineContext:
    """Get engine context instance"""
    context = getattr(request.app.state, "engine", None)
    if context is None:
        raise RuntimeError("Dependencies not initialized. Call initialize_dependencies() first.")
    return context


def get_dashboard_service(request: Request) -> DashboardService:
    """Get dashboard service instance"""
    service = getattr(request.app.state, "dashboard_service", None)
    if service is None:
        raise RuntimeError("Dependencies not initialized. Call initialize_dependencies() first.")
    return service


# Dependency injection annotations
EngineDep = Annotated[EngineContext, Depends(get_engine)]
DashboardServiceDep = Annotated[DashboardService, Depends(get_dashboard_service)]
