"""Health check API endpoints"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.deps.common import get_db_session
from service.health_service import get_health
from service.dto import HealthResponseDTO

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponseDTO)
def health_check(session: Session = Depends(get_db_session)) -> HealthResponseDTO:
    """
    Health check endpoint with database ping.

    Returns:
        HealthResponseDTO: Health status with timestamp
    """
    return get_health(session)
