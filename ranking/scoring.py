"""Scoring functions used to rank candidate videos.

All functions are pure; `weighted_random_score` draws from the generator it
is handed and is meant to be evaluated fresh for every request.
"""
import math
import random
from datetime import datetime, timezone
from typing import Optional

LIKE_WEIGHT = 10

RELEVANCE_TITLE = 3
RELEVANCE_DESCRIPTION = 2
RELEVANCE_TAGS = 1
RELEVANCE_NONE = 0


def as_utc(moment: datetime) -> datetime:
    """Treat naive timestamps (as returned by SQLite) as UTC"""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def engagement_score(views: int, likes: int) -> int:
    """Fixed-weight popularity: a like counts as ten views"""
    return views + likes * LIKE_WEIGHT


def weighted_random_score(views: int, rng: Optional[random.Random] = None) -> float:
    """Shuffle key biased logarithmically toward viewed videos"""
    rng = rng or random
    return rng.random() * (1 + math.log10(views + 1))


def age_in_days(created_at: datetime, now: datetime) -> int:
    """Calendar days between creation and now, never negative"""
    days = (as_utc(now).date() - as_utc(created_at).date()).days
    return max(0, days)


def trending_score(views: int, likes: int, created_at: datetime, now: datetime) -> float:
    """Engagement decayed by age; same-day uploads divide by one"""
    return engagement_score(views, likes) / (age_in_days(created_at, now) + 1)


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


def relevance_tier(query: str, title: Optional[str], description: Optional[str],
                   tags: Optional[str]) -> int:
    """Discrete match tier: title beats description beats tags"""
    needle = (query or "").strip().lower()
    if not needle:
        return RELEVANCE_NONE
    if _contains(title, needle):
        return RELEVANCE_TITLE
    if _contains(description, needle):
        return RELEVANCE_DESCRIPTION
    if _contains(tags, needle):
        return RELEVANCE_TAGS
    return RELEVANCE_NONE
