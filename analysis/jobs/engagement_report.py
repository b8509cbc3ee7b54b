#!/usr/bin/env python3
import sys
import logging
import argparse
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
from sqlalchemy import select
from sqlalchemy.orm import Session

# Add project root to path
sys.path.insert(0, ".")

from core.db import SessionLocal
from core.logging import setup_json_logging
from core.models import Video, VideoStatus
from ranking.scoring import LIKE_WEIGHT

logger = logging.getLogger(__name__)

REPORT_COLUMNS = ["id", "title", "views", "likes", "duration", "category_id", "created_at"]

PERIOD_DAYS = {"week": 7, "month": 30, "year": 365}


def load_published_frame(session: Session) -> pd.DataFrame:
    """Fetch every published video into a DataFrame"""
    stmt = select(*[getattr(Video, name) for name in REPORT_COLUMNS]).where(
        Video.status == VideoStatus.PUBLISHED.value
    )
    rows = session.execute(stmt).all()
    if not rows:
        return pd.DataFrame(columns=REPORT_COLUMNS)

    df = pd.DataFrame(rows, columns=REPORT_COLUMNS)
    df["created_at"] = pd.to_datetime(df["created_at"], utc=True)
    return df


def general_stats(df: pd.DataFrame) -> Dict[str, int]:
    """Totals across the published catalogue"""
    if df.empty:
        return {"total_videos": 0, "total_views": 0, "total_likes": 0, "average_duration": 0}

    return {
        "total_videos": int(len(df)),
        "total_views": int(df["views"].sum()),
        "total_likes": int(df["likes"].sum()),
        "average_duration": int(round(float(df["duration"].mean()))),
    }


def period_start(period: str, now: datetime) -> Optional[pd.Timestamp]:
    if period == "today":
        return pd.Timestamp(now).tz_convert("UTC").normalize()
    if period in PERIOD_DAYS:
        return pd.Timestamp(now - timedelta(days=PERIOD_DAYS[period])).tz_convert("UTC")
    return None


def top_videos(df: pd.DataFrame, period: str, now: datetime, top_n: int = 10) -> pd.DataFrame:
    """Most viewed videos created within the period, likes as tie-break"""
    if df.empty:
        return df

    start = period_start(period, now)
    scoped = df if start is None else df[df["created_at"] >= start]
    return scoped.sort_values(["views", "likes", "id"], ascending=[False, False, True]).head(top_n)


def category_performance(df: pd.DataFrame) -> pd.DataFrame:
    """Per-category aggregates ordered by total views"""
    if df.empty:
        return pd.DataFrame(columns=["category_id", "video_count", "total_views", "total_likes", "avg_views"])

    grouped = (
        df.dropna(subset=["category_id"])
        .groupby("category_id")
        .agg(
            video_count=("id", "count"),
            total_views=("views", "sum"),
            total_likes=("likes", "sum"),
            avg_views=("views", "mean"),
        )
        .reset_index()
    )
    grouped["category_id"] = grouped["category_id"].astype(int)
    return grouped.sort_values("total_views", ascending=False).reset_index(drop=True)


def add_trending_scores(df: pd.DataFrame, now: datetime) -> pd.DataFrame:
    """Vectorised (views + likes * 10) / (age_in_days + 1)"""
    scored = df.copy()
    if scored.empty:
        scored["trending_score"] = pd.Series(dtype=float)
        return scored

    today = pd.Timestamp(now).tz_convert("UTC").normalize()
    created_day = scored["created_at"].dt.tz_convert("UTC").dt.normalize()
    age_days = np.maximum((today - created_day).dt.days.to_numpy(), 0)
    engagement = scored["views"].to_numpy() + scored["likes"].to_numpy() * LIKE_WEIGHT
    scored["trending_score"] = engagement / (age_days + 1)
    return scored


def _records(df: pd.DataFrame, columns: List[str]) -> List[Dict[str, Any]]:
    records = df[columns].to_dict(orient="records")
    for record in records:
        for column, value in record.items():
            if isinstance(value, pd.Timestamp):
                record[column] = value.isoformat()
    return records


class EngagementReporter:
    def __init__(self, session: Optional[Session] = None):
        self._owns_session = session is None
        self.db = session if session is not None else SessionLocal()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._owns_session:
            self.db.close()

    def build_report(self, period: str = "week", top_n: int = 10,
                     now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.now(timezone.utc)
        trace_id = f"engagement_report_{now.strftime('%Y%m%d_%H%M%S')}"

        try:
            logger.info("Starting engagement report", extra={"trace_id": trace_id, "job": "engagement_report"})

            df = load_published_frame(self.db)
            top = add_trending_scores(top_videos(df, period, now, top_n), now)
            categories = category_performance(df)

            report = {
                "timestamp": now.isoformat(),
                "period": period,
                "stats": general_stats(df),
                "top_videos": _records(top, REPORT_COLUMNS[:4] + ["trending_score"]),
                "categories": _records(categories, list(categories.columns)),
            }

            logger.info("Engagement report completed", extra={
                "trace_id": trace_id,
                "job": "engagement_report",
                "total_count": report["stats"]["total_videos"],
            })
            return report

        except Exception as e:
            logger.error(f"Engagement report failed: {e}", extra={
                "trace_id": trace_id,
                "job": "engagement_report"
            })
            raise


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(description="Summarise engagement of published videos")
    parser.add_argument("--period", default="week", choices=["today", "week", "month", "year", "all"],
                        help="Top video window (default: week)")
    parser.add_argument("--top-n", type=int, default=10, help="Top N videos (default: 10)")
    parser.add_argument("--out-file", help="Output file path (optional)")

    args = parser.parse_args(argv)

    setup_json_logging()

    with EngagementReporter() as reporter:
        report = reporter.build_report(args.period, args.top_n)

    json_output = json.dumps(report, indent=2, ensure_ascii=False)

    if args.out_file:
        with open(args.out_file, 'w', encoding='utf-8') as f:
            f.write(json_output)
        print(f"Report saved to {args.out_file}")
    else:
        print(json_output)


if __name__ == "__main__":
    main()
