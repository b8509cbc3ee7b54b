"""Allow-listed sort keys and their Python comparators.

Column keys and the `engagement`/`relevance` keys can be pushed down into the
store's query language. `trending`, `weighted_random` and `random` depend on
the request clock or a random draw, so the store evaluates them in Python
over the filtered candidate set.
"""
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ranking import scoring

logger = logging.getLogger(__name__)

COLUMN_KEYS = frozenset({
    "id", "created_at", "updated_at", "views", "likes", "duration", "title", "episode_number",
})
EXPRESSION_KEYS = frozenset({"engagement", "relevance"})
COMPUTED_KEYS = frozenset({"trending", "weighted_random", "random"})
SORT_KEYS = COLUMN_KEYS | EXPRESSION_KEYS | COMPUTED_KEYS

ADVANCED_SORT_COLUMNS = ("created_at", "views", "likes", "duration", "title")


@dataclass(frozen=True)
class SortTerm:
    key: str
    descending: bool = True

    def __post_init__(self):
        if self.key not in SORT_KEYS:
            raise ValueError(f"Unsupported sort key: {self.key!r}")


def desc(key: str) -> SortTerm:
    return SortTerm(key, True)


def asc(key: str) -> SortTerm:
    return SortTerm(key, False)


@dataclass(frozen=True)
class Order:
    """Ordered sort terms plus the request context computed keys need"""
    terms: Tuple[SortTerm, ...]
    search_text: Optional[str] = None
    now: Optional[datetime] = None
    rng: Optional[random.Random] = field(default=None, compare=False)

    def __post_init__(self):
        keys = {term.key for term in self.terms}
        if "relevance" in keys and not self.search_text:
            raise ValueError("Relevance ordering needs search text")
        if "trending" in keys and self.now is None:
            raise ValueError("Trending ordering needs a reference time")

    @property
    def is_computed(self) -> bool:
        return any(term.key in COMPUTED_KEYS for term in self.terms)

    def _value_getter(self, key: str) -> Callable[[Any], Any]:
        if key == "engagement":
            return lambda v: scoring.engagement_score(v.views or 0, v.likes or 0)
        if key == "relevance":
            return lambda v: scoring.relevance_tier(self.search_text, v.title, v.description, v.tags)
        if key == "trending":
            return lambda v: scoring.trending_score(v.views or 0, v.likes or 0, v.created_at, self.now)
        if key == "weighted_random":
            return lambda v: scoring.weighted_random_score(v.views or 0, self.rng)
        if key == "random":
            rng = self.rng or random
            return lambda v: rng.random()
        if key in ("created_at", "updated_at"):
            return lambda v: scoring.as_utc(getattr(v, key))
        # Nullable columns sort last in either direction
        return lambda v: getattr(v, key)

    def sort(self, videos: Iterable[Any]) -> List[Any]:
        """Stable multi-key sort, least significant key first, id as final tie-break"""
        ordered = sorted(videos, key=lambda v: v.id)
        for term in reversed(self.terms):
            getter = self._value_getter(term.key)
            values: Dict[int, Any] = {id(v): getter(v) for v in ordered}
            present = [v for v in ordered if values[id(v)] is not None]
            missing = [v for v in ordered if values[id(v)] is None]
            present.sort(key=lambda v: values[id(v)], reverse=term.descending)
            ordered = present + missing
        return ordered


def advanced_order(sort_by: Optional[str], sort_order: Optional[str]) -> Order:
    """Map a caller supplied column/direction onto the allow-list"""
    column = (sort_by or "created_at").strip().lower()
    if column not in ADVANCED_SORT_COLUMNS:
        logger.warning("Rejected sort column, using created_at", extra={"error_code": "SORT_COLUMN"})
        column = "created_at"

    direction = (sort_order or "desc").strip().lower()
    if direction not in ("asc", "desc"):
        logger.warning("Rejected sort direction, using desc", extra={"error_code": "SORT_ORDER"})
        direction = "desc"

    return Order((SortTerm(column, direction == "desc"),))
