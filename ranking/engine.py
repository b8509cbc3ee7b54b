"""Ranking & retrieval engine over a Video Record Store"""
import logging
import math
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from core.models import Video, VideoStatus
from ranking.errors import InvalidInputError, VideoNotFoundError
from ranking.filters import Contains, Filter
from ranking.ordering import Order, desc
from ranking.pagination import FeedPage, PageWindow, SearchPage, clamp_limit
from ranking.strategies import FeedFilters, get_strategy, related_filter, related_order
from ranking.tags import TagCount, TagIndex
from store.video_store import VideoStore

logger = logging.getLogger(__name__)

RELATED_DEFAULT_LIMIT = 4
RELATED_MAX_LIMIT = 20
SUGGEST_DEFAULT_LIMIT = 5
SUGGEST_MAX_LIMIT = 20
POPULAR_TAGS_DEFAULT_LIMIT = 10
POPULAR_TAGS_MAX_LIMIT = 50


@dataclass(frozen=True)
class Suggestion:
    suggestion: str
    type: str
    count: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _check_video_id(video_id) -> int:
    if isinstance(video_id, bool) or not isinstance(video_id, int) or video_id < 1:
        raise InvalidInputError(f"Invalid video id: {video_id!r}")
    return video_id


class RankingEngine:
    """Request-scoped facade: build one per request around that request's store.

    Holds no counter state of its own; every read goes to the store.
    """

    def __init__(self, store: VideoStore, clock: Optional[Callable[[], datetime]] = None,
                 rng: Optional[random.Random] = None):
        self.store = store
        self.clock = clock or _utcnow
        self.rng = rng or random.Random()

    # ===== FEEDS =====

    def get_feed(self, strategy_name: str, filters: Optional[FeedFilters] = None,
                 page: int = 1, limit: Optional[int] = None) -> FeedPage:
        strategy = get_strategy(strategy_name)
        filters = filters or FeedFilters()
        window = PageWindow.build(page, limit, default_limit=strategy.default_limit,
                                  max_limit=strategy.max_limit)
        now = self.clock()

        predicate = strategy.build_filter(filters, now)
        if predicate is None:
            logger.debug("Feed short-circuited to empty", extra={"strategy": strategy.name})
            return FeedPage.empty(window, strategy.name)

        order = strategy.build_order(filters, now, self.rng)
        items = self.store.query(predicate, order, window.offset, window.limit)
        total = self.store.count(predicate)

        logger.debug("Feed page built", extra={
            "strategy": strategy.name,
            "page": window.page,
            "limit": window.limit,
            "total_count": total,
        })
        return FeedPage(items=items, page=window.page, limit=window.limit,
                        total_count=total, strategy=strategy.name)

    def search(self, query: Optional[str], page: int = 1, limit: Optional[int] = None) -> SearchPage:
        """Relevance-tiered search; a blank query matches nothing"""
        text = (query or "").strip()
        feed = self.get_feed("search", FeedFilters(query=text), page, limit)
        return SearchPage(items=feed.items, page=feed.page, limit=feed.limit,
                          total_count=feed.total_count, strategy=feed.strategy, query=text)

    def get_related(self, video_id: int, limit: Optional[int] = None) -> List[Video]:
        source = self._require(video_id, include_unpublished=True)
        size = clamp_limit(limit, RELATED_DEFAULT_LIMIT, RELATED_MAX_LIMIT)
        return self.store.query(
            related_filter(source.id, source.tags),
            related_order(source.tags, self.rng),
            0,
            size,
        )

    def get_video(self, video_id: int, include_unpublished: bool = False) -> Video:
        return self._require(video_id, include_unpublished)

    # ===== DISCOVERY HELPERS =====

    def suggest(self, query: Optional[str], limit: Optional[int] = None) -> List[Suggestion]:
        text = (query or "").strip()
        if not text:
            return []
        size = clamp_limit(limit, SUGGEST_DEFAULT_LIMIT, SUGGEST_MAX_LIMIT)

        titles = [
            Suggestion(title, "title", views)
            for title, views in self._distinct_titles(text, size // 2).items()
        ]

        index = TagIndex.from_tag_strings(
            self.store.tag_values(Filter.published().where(Contains(("tags",), (text,))))
        )
        tags = [
            Suggestion(entry.tag, "tag", entry.count)
            for entry in index.most_common(math.ceil(size / 2), containing=text)
        ]
        return (titles + tags)[:size]

    def _distinct_titles(self, text: str, slots: int) -> Dict[str, int]:
        """Most viewed titles containing text; repeated titles keep their best views"""
        found: Dict[str, int] = {}
        predicate = Filter.published().text(text, fields=("title",))
        order = Order((desc("views"),))
        offset = 0
        while len(found) < slots:
            batch = self.store.query(predicate, order, offset, slots)
            for video in batch:
                found.setdefault(video.title, video.views)
            if len(batch) < slots:
                break
            offset += slots
        return dict(list(found.items())[:slots])

    def popular_tags(self, limit: Optional[int] = None) -> List[TagCount]:
        size = clamp_limit(limit, POPULAR_TAGS_DEFAULT_LIMIT, POPULAR_TAGS_MAX_LIMIT)
        index = TagIndex.from_tag_strings(self.store.tag_values(Filter.published()))
        return index.most_common(size)

    # ===== COUNTERS =====

    def register_view(self, video_id: int, user_ip: Optional[str] = None,
                      user_agent: Optional[str] = None) -> int:
        return self._bump(video_id, "views", 1, "view", user_ip, user_agent)

    def register_like(self, video_id: int, user_ip: Optional[str] = None,
                      user_agent: Optional[str] = None) -> int:
        return self._bump(video_id, "likes", 1, "like", user_ip, user_agent)

    def unregister_like(self, video_id: int, user_ip: Optional[str] = None,
                        user_agent: Optional[str] = None) -> int:
        return self._bump(video_id, "likes", -1, "unlike", user_ip, user_agent)

    def _bump(self, video_id, field: str, delta: int, interaction: str,
              user_ip: Optional[str], user_agent: Optional[str]) -> int:
        video_id = _check_video_id(video_id)
        if self.store.atomic_increment(video_id, field, delta) == 0:
            raise VideoNotFoundError(video_id)

        self.store.log_interaction(video_id, interaction, {"user_ip": user_ip, "user_agent": user_agent})

        video = self.store.get_by_id(video_id)
        if video is None:
            # Deleted between the update and the read
            raise VideoNotFoundError(video_id)
        value = getattr(video, field)
        logger.debug(f"Registered {interaction}", extra={"video_id": video_id})
        return value

    def _require(self, video_id, include_unpublished: bool) -> Video:
        video = self.store.get_by_id(_check_video_id(video_id))
        if video is None:
            raise VideoNotFoundError(video_id)
        if not include_unpublished and video.status != VideoStatus.PUBLISHED.value:
            raise VideoNotFoundError(video_id)
        return video
