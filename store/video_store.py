"""Abstract Video Record Store consumed by the ranking engine"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from core.models import Video
from ranking.filters import Filter
from ranking.ordering import Order

COUNTER_FIELDS = ("views", "likes")


class VideoStore(ABC):
    """Repository interface over video records and their counters"""

    @abstractmethod
    def query(self, filter: Filter, order: Order, offset: int = 0,
              limit: Optional[int] = None) -> List[Video]:
        """Return matching videos in order, windowed by offset/limit"""

    @abstractmethod
    def count(self, filter: Filter) -> int:
        """Count videos matching the same predicate `query` would use"""

    @abstractmethod
    def get_by_id(self, video_id: int) -> Optional[Video]:
        """Return the video or None"""

    @abstractmethod
    def tag_values(self, filter: Filter) -> List[Optional[str]]:
        """Raw tag strings of every matching video"""

    @abstractmethod
    def atomic_increment(self, video_id: int, field: str, delta: int) -> int:
        """Apply a relative counter update in one statement; returns affected rows.

        A likes decrement is floored at zero by the store itself.
        """

    @abstractmethod
    def log_interaction(self, video_id: int, interaction_type: str,
                        metadata: Optional[Dict[str, Any]] = None) -> None:
        """Record an interaction. Must never raise."""

    @abstractmethod
    def add(self, values: Dict[str, Any]) -> Video:
        """Insert a video record"""

    @abstractmethod
    def update_metadata(self, video_id: int, changes: Dict[str, Any]) -> Optional[Video]:
        """Edit metadata fields and bump updated_at; None when missing"""
