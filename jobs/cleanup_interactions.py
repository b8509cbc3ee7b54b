#!/usr/bin/env python3
import sys
import logging
import argparse
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

# Add project root to path
sys.path.insert(0, ".")

from core.config import settings
from core.db import SessionLocal
from core.logging import setup_json_logging
from core.models import VideoInteraction

logger = logging.getLogger(__name__)


def cleanup_interactions(session: Session, retention_days: int,
                         now: Optional[datetime] = None) -> int:
    """Delete interaction log rows older than the retention window"""
    if retention_days < 1:
        raise ValueError(f"retention_days must be positive, got {retention_days}")

    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=retention_days)
    trace_id = f"cleanup_interactions_{now.strftime('%Y%m%d_%H%M%S')}"

    try:
        result = session.execute(
            delete(VideoInteraction)
            .where(VideoInteraction.created_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Interaction cleanup failed: {e}", extra={
            "trace_id": trace_id,
            "job": "cleanup_interactions"
        })
        raise

    logger.info("Interaction cleanup completed", extra={
        "trace_id": trace_id,
        "job": "cleanup_interactions",
        "total_count": result.rowcount,
    })
    return result.rowcount


def run(retention_days: Optional[int] = None) -> int:
    with SessionLocal() as session:
        return cleanup_interactions(session, retention_days or settings.interaction_retention_days)


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(description="Delete old video interaction log rows")
    parser.add_argument("--days", type=int, default=settings.interaction_retention_days,
                        help=f"Retention in days (default: {settings.interaction_retention_days})")
    args = parser.parse_args(argv)

    setup_json_logging(settings.log_level)
    deleted = run(args.days)
    print(f"Deleted {deleted} interaction rows")


if __name__ == "__main__":
    main()
