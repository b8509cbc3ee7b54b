"""Health service for basic health checks"""
import logging
from datetime import datetime, timezone

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from service.dto import HealthResponseDTO

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def get_health(session: Session) -> HealthResponseDTO:
    """
    Get health status including a database ping.

    Returns:
        HealthResponseDTO: Health check result
    """
    logger.info("Health check requested")

    try:
        session.execute(text("SELECT 1"))
        database_ok = True
    except SQLAlchemyError as e:
        logger.error(f"Database ping failed: {e}", extra={"error_type": type(e).__name__})
        database_ok = False

    return HealthResponseDTO(
        ok=database_ok,
        database=database_ok,
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=VERSION
    )
