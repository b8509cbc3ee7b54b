"""Feed strategies: filter + order + page-size policy per feed type"""
import random
from abc import ABC, abstractmethod
from datetime import datetime, time, timedelta, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ranking.errors import UnknownStrategyError
from ranking.filters import Contains, Filter, OneOf
from ranking.ordering import Order, advanced_order, asc, desc
from ranking.pagination import COMPACT_MAX_LIMIT, PUBLIC_MAX_LIMIT
from ranking.scoring import as_utc
from ranking.tags import split_tags

TRENDING_WINDOWS = {
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
}


class FeedFilters(BaseModel):
    """Optional parameters a strategy may read; unused ones are ignored"""
    query: Optional[str] = None
    tag: Optional[str] = None
    window: Optional[str] = None
    category_id: Optional[int] = None
    series_id: Optional[int] = None
    status: Optional[str] = None
    min_duration: Optional[int] = None
    max_duration: Optional[int] = None
    min_views: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None
    preferred_tags: List[str] = Field(default_factory=list)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    return as_utc(value) if value is not None else None


def window_start(window: Optional[str], now: datetime) -> Optional[datetime]:
    """Earliest created_at admitted by a trending window; None means no bound"""
    name = (window or "all").strip().lower()
    if name == "today":
        return datetime.combine(now.astimezone(timezone.utc).date(), time.min, tzinfo=timezone.utc)
    if name in TRENDING_WINDOWS:
        return now - TRENDING_WINDOWS[name]
    return None


class FeedStrategy(ABC):
    """Base class for a named feed ordering"""
    name: str = ""
    default_limit: int = 10
    max_limit: int = PUBLIC_MAX_LIMIT

    @abstractmethod
    def build_filter(self, filters: FeedFilters, now: datetime) -> Optional[Filter]:
        """Candidate predicate, or None to short-circuit to an empty page"""

    @abstractmethod
    def build_order(self, filters: FeedFilters, now: datetime, rng: random.Random) -> Order:
        """Ordering over the candidate set"""


class LatestStrategy(FeedStrategy):
    name = "latest"
    default_limit = 12

    def build_filter(self, filters, now):
        return Filter.published()

    def build_order(self, filters, now, rng):
        return Order((desc("created_at"),))


class RandomStrategy(FeedStrategy):
    """Popularity-biased shuffle; pages of successive calls may overlap"""
    name = "random"

    def build_filter(self, filters, now):
        return Filter.published()

    def build_order(self, filters, now, rng):
        return Order((desc("weighted_random"),), rng=rng)


class ViewsStrategy(FeedStrategy):
    name = "views"

    def build_filter(self, filters, now):
        return Filter.published()

    def build_order(self, filters, now, rng):
        return Order((desc("views"), desc("likes")))


class LikesStrategy(FeedStrategy):
    name = "likes"

    def build_filter(self, filters, now):
        return Filter.published()

    def build_order(self, filters, now, rng):
        return Order((desc("likes"), desc("views")))


class PopularStrategy(FeedStrategy):
    name = "popular"

    def build_filter(self, filters, now):
        return Filter.published()

    def build_order(self, filters, now, rng):
        return Order((desc("engagement"),))


class TrendingStrategy(FeedStrategy):
    """The window narrows candidates; the score itself is unchanged"""
    name = "trending"
    default_limit = 5
    max_limit = COMPACT_MAX_LIMIT

    def build_filter(self, filters, now):
        return Filter.published().range("created_at", low=window_start(filters.window, now))

    def build_order(self, filters, now, rng):
        return Order((desc("trending"),), now=now)


class SearchStrategy(FeedStrategy):
    name = "search"
    default_limit = 12

    def build_filter(self, filters, now):
        query = (filters.query or "").strip()
        if not query:
            return None
        return Filter.published().text(query)

    def build_order(self, filters, now, rng):
        return Order((desc("relevance"), desc("engagement")), search_text=(filters.query or "").strip())


class TagStrategy(FeedStrategy):
    """Substring match on the raw tag string: "ca" also finds "cat" and "category"."""
    name = "tag"

    def build_filter(self, filters, now):
        tag = (filters.tag or "").strip()
        if not tag:
            return None
        return Filter.published().text(tag, fields=("tags",))

    def build_order(self, filters, now, rng):
        return Order((desc("views"), desc("likes")))


class AdvancedStrategy(FeedStrategy):
    name = "advanced"

    def build_filter(self, filters, now):
        return (
            Filter.published()
            .text(filters.query)
            .range("duration", filters.min_duration, filters.max_duration)
            .range("views", low=filters.min_views)
            .range("created_at", _as_utc(filters.start_date), _as_utc(filters.end_date))
        )

    def build_order(self, filters, now, rng):
        return advanced_order(filters.sort_by, filters.sort_order)


class RecommendedStrategy(FeedStrategy):
    name = "recommended"

    def build_filter(self, filters, now):
        result = Filter.published()
        if filters.min_duration is not None and filters.max_duration is not None:
            result = result.range("duration", filters.min_duration, filters.max_duration)
        preferred = tuple(tag.strip() for tag in filters.preferred_tags if tag.strip())
        if preferred:
            result = result.where(Contains(("tags",), preferred))
        return result

    def build_order(self, filters, now, rng):
        return Order((desc("weighted_random"),), rng=rng)


class CategoryStrategy(FeedStrategy):
    name = "category"
    default_limit = 12

    def build_filter(self, filters, now):
        if filters.category_id is None:
            return None
        return Filter.published().equals("category_id", filters.category_id)

    def build_order(self, filters, now, rng):
        return Order((desc("created_at"),))


class SeriesStrategy(FeedStrategy):
    name = "series"
    default_limit = 20

    def build_filter(self, filters, now):
        if filters.series_id is None:
            return None
        return Filter.published().equals("series_id", filters.series_id)

    def build_order(self, filters, now, rng):
        return Order((asc("episode_number"), asc("created_at")))


class AdminStrategy(FeedStrategy):
    """Management listing: every status unless one is asked for"""
    name = "admin"
    default_limit = 20

    def build_filter(self, filters, now):
        return (
            Filter()
            .equals("status", filters.status)
            .equals("category_id", filters.category_id)
            .equals("series_id", filters.series_id)
            .text(filters.query)
        )

    def build_order(self, filters, now, rng):
        return Order((desc("created_at"),))


STRATEGIES: Dict[str, FeedStrategy] = {
    strategy.name: strategy
    for strategy in (
        LatestStrategy(),
        RandomStrategy(),
        ViewsStrategy(),
        LikesStrategy(),
        PopularStrategy(),
        TrendingStrategy(),
        SearchStrategy(),
        TagStrategy(),
        AdvancedStrategy(),
        RecommendedStrategy(),
        CategoryStrategy(),
        SeriesStrategy(),
        AdminStrategy(),
    )
}

PUBLIC_STRATEGIES = tuple(name for name in STRATEGIES if name != "admin")


def get_strategy(name: str) -> FeedStrategy:
    try:
        return STRATEGIES[(name or "").strip().lower()]
    except KeyError:
        raise UnknownStrategyError(name)


def related_filter(source_id: int, source_tags: Optional[str]) -> Filter:
    """Published videos other than the source sharing any of its tags"""
    base = Filter.published().where(OneOf("id", (source_id,), negate=True))
    tags = tuple(split_tags(source_tags))
    if not tags:
        return base
    return base.where(Contains(("tags",), tags))


def related_order(source_tags: Optional[str], rng: random.Random) -> Order:
    if split_tags(source_tags):
        return Order((desc("engagement"),))
    return Order((desc("random"),), rng=rng)
