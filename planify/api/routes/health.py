"""
Health check routes for monitoring and service discovery.
Provides endpoints to verify service health and database connectivity.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from planify.core.config import settings
from planify.core.logging import get_logger
from planify.db.session import get_session

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
def health_check() -> dict:
    """
    Basic health check endpoint.
    Returns service status and version information.
    """
    return {
        "success": True,
        "message": "Server is healthy",
        "data": {
            "status": "healthy",
            "service": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
        },
    }


@router.get("/health/db")
def database_health_check(session: Annotated[Session, Depends(get_session)]) -> JSONResponse:
    """
    Database health check endpoint.
    Verifies database connectivity by executing a simple query.
    """
    try:
        session.connection().execute(text("SELECT 1")).scalar()
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {type(e).__name__}")
        return JSONResponse(
            status_code=503,
            content={"success": False, "message": "Database is unavailable", "data": {"database": "error"}},
        )

    return JSONResponse(
        content={"success": True, "message": "Database is healthy", "data": {"database": "ok"}},
    )
