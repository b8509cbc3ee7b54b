"""Composable filter predicates.

A `Filter` is an AND of clauses drawn from a closed set (equality, range,
substring, set membership). Store adapters compile the clauses to their own
query language; user input only ever travels as clause values.
"""
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

from core.models import VideoStatus

FILTER_FIELDS = frozenset({
    "id",
    "title",
    "description",
    "tags",
    "duration",
    "views",
    "likes",
    "status",
    "category_id",
    "series_id",
    "created_at",
})

TEXT_FIELDS = ("title", "description", "tags")


def _check_field(name: str) -> None:
    if name not in FILTER_FIELDS:
        raise ValueError(f"Field {name!r} cannot be filtered on")


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any

    def __post_init__(self):
        _check_field(self.field)


@dataclass(frozen=True)
class Between:
    """Inclusive range; an open side is None"""
    field: str
    low: Any = None
    high: Any = None

    def __post_init__(self):
        _check_field(self.field)
        if self.low is None and self.high is None:
            raise ValueError("Between needs at least one bound")


@dataclass(frozen=True)
class Contains:
    """Case-insensitive substring match of any term in any of the fields"""
    fields: Tuple[str, ...]
    terms: Tuple[str, ...]

    def __post_init__(self):
        for name in self.fields:
            _check_field(name)
        if not self.fields or not self.terms:
            raise ValueError("Contains needs at least one field and one term")
        if any(not term for term in self.terms):
            raise ValueError("Contains terms must be non-empty")


@dataclass(frozen=True)
class OneOf:
    field: str
    values: Tuple[Any, ...]
    negate: bool = False

    def __post_init__(self):
        _check_field(self.field)


Clause = Union[Equals, Between, Contains, OneOf]


@dataclass(frozen=True)
class Filter:
    clauses: Tuple[Clause, ...] = ()

    @classmethod
    def published(cls) -> "Filter":
        return cls((Equals("status", VideoStatus.PUBLISHED.value),))

    def where(self, *clauses: Optional[Clause]) -> "Filter":
        """Return a new filter with the non-None clauses ANDed on"""
        added = tuple(clause for clause in clauses if clause is not None)
        return Filter(self.clauses + added)

    def text(self, query: Optional[str], fields: Tuple[str, ...] = TEXT_FIELDS) -> "Filter":
        query = (query or "").strip()
        if not query:
            return self
        return self.where(Contains(fields, (query,)))

    def range(self, field: str, low: Any = None, high: Any = None) -> "Filter":
        if low is None and high is None:
            return self
        return self.where(Between(field, low, high))

    def equals(self, field: str, value: Any) -> "Filter":
        if value is None:
            return self
        return self.where(Equals(field, value))
