"""Common dependencies for FastAPI dependency injection"""
import uuid
from datetime import datetime, timezone
from typing import Generator, Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from core.db import get_db
from ranking.engine import RankingEngine
from store.sql_store import SqlVideoStore


def get_db_session() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields:
        Session: SQLAlchemy database session
    """
    yield from get_db()


def get_trace_id() -> str:
    """
    Generate unique trace ID for request tracking.

    Returns:
        str: Unique trace ID
    """
    return f"api_{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"


def get_ranking_engine(session: Session = Depends(get_db_session)) -> RankingEngine:
    """Request-scoped ranking engine over the request's session"""
    return RankingEngine(SqlVideoStore(session))


def lenient_int(value: Optional[str], default: Optional[int] = None) -> Optional[int]:
    """Parse a query-string integer, falling back to default on garbage"""
    if value is None:
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def page_param(page: Optional[str] = None) -> int:
    """Page number; anything unparsable or below 1 becomes 1"""
    return max(1, lenient_int(page, 1))


def limit_param(limit: Optional[str] = None) -> Optional[int]:
    """Raw page size; strategies clamp it to their own bounds"""
    return lenient_int(limit)
