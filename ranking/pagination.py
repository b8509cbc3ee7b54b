"""Page window and page metadata shared by every feed"""
import math
from dataclasses import dataclass
from typing import Any, List, Optional

PUBLIC_MAX_LIMIT = 100
COMPACT_MAX_LIMIT = 50


def clamp_limit(limit: Optional[int], default: int, maximum: int) -> int:
    """Clamp a requested page size into [1, maximum]; missing or zero means default"""
    if not limit:
        return default
    return max(1, min(maximum, int(limit)))


@dataclass(frozen=True)
class PageWindow:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return max(0, (self.page - 1) * self.limit)

    @classmethod
    def build(cls, page: Optional[int], limit: Optional[int], *, default_limit: int,
              max_limit: int) -> "PageWindow":
        return cls(page=page or 1, limit=clamp_limit(limit, default_limit, max_limit))


@dataclass
class FeedPage:
    """One page of a ranked result set plus totals for the same predicate"""
    items: List[Any]
    page: int
    limit: int
    total_count: int
    strategy: str = ""

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.limit) if self.limit else 0

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1

    @classmethod
    def empty(cls, window: PageWindow, strategy: str = "") -> "FeedPage":
        return cls(items=[], page=window.page, limit=window.limit, total_count=0,
                   strategy=strategy)


@dataclass
class SearchPage(FeedPage):
    query: str = ""

    @property
    def total_results(self) -> int:
        return self.total_count
