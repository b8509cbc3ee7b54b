"""Derived tag index built from the comma separated `Video.tags` field"""
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List, Optional


@dataclass(frozen=True)
class TagCount:
    tag: str
    count: int


def split_tags(raw: Optional[str]) -> List[str]:
    """Split a stored tag string into trimmed, non-empty labels"""
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


def normalize_tag(tag: str) -> str:
    return tag.strip().lower()


class TagIndex:
    """Map from normalized tag to the number of videos carrying it.

    Never authoritative: rebuild it from the tag strings whenever it is needed.
    """

    def __init__(self, counts: Optional[Counter] = None):
        self._counts = counts or Counter()

    @classmethod
    def from_tag_strings(cls, rows: Iterable[Optional[str]]) -> "TagIndex":
        counts = Counter()
        for raw in rows:
            for tag in split_tags(raw):
                counts[normalize_tag(tag)] += 1
        return cls(counts)

    def __len__(self) -> int:
        return len(self._counts)

    def most_common(self, limit: int, containing: Optional[str] = None) -> List[TagCount]:
        """Most frequent tags first, ties broken alphabetically"""
        needle = (containing or "").strip().lower()
        items = [(tag, count) for tag, count in self._counts.items() if needle in tag]
        items.sort(key=lambda item: (-item[1], item[0]))
        return [TagCount(tag=tag, count=count) for tag, count in items[:limit]]
