"""SQLAlchemy implementation of the Video Record Store"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, case, func, not_, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.models import Video, VideoInteraction
from ranking import scoring
from ranking.filters import Between, Clause, Contains, Equals, Filter, OneOf
from ranking.ordering import Order, SortTerm
from store.video_store import COUNTER_FIELDS, VideoStore

logger = logging.getLogger(__name__)

METADATA_FIELDS = frozenset({
    "title", "description", "tags", "duration", "category_id", "series_id",
    "episode_number", "status",
})


def _column(name: str):
    return getattr(Video, name)


def compile_clause(clause: Clause):
    """Translate one filter clause into a SQL expression"""
    if isinstance(clause, Equals):
        return _column(clause.field) == clause.value
    if isinstance(clause, Between):
        column = _column(clause.field)
        bounds = []
        if clause.low is not None:
            bounds.append(column >= clause.low)
        if clause.high is not None:
            bounds.append(column <= clause.high)
        return and_(*bounds)
    if isinstance(clause, Contains):
        return or_(*[
            _column(name).icontains(term, autoescape=True)
            for name in clause.fields
            for term in clause.terms
        ])
    if isinstance(clause, OneOf):
        expression = _column(clause.field).in_(clause.values)
        return not_(expression) if clause.negate else expression
    raise TypeError(f"Unsupported filter clause: {clause!r}")


def compile_filter(filter: Filter) -> list:
    return [compile_clause(clause) for clause in filter.clauses]


def _sort_expression(term: SortTerm, order: Order):
    if term.key == "engagement":
        expression = Video.views + Video.likes * scoring.LIKE_WEIGHT
    elif term.key == "relevance":
        expression = case(
            (Video.title.icontains(order.search_text, autoescape=True), scoring.RELEVANCE_TITLE),
            (Video.description.icontains(order.search_text, autoescape=True), scoring.RELEVANCE_DESCRIPTION),
            (Video.tags.icontains(order.search_text, autoescape=True), scoring.RELEVANCE_TAGS),
            else_=scoring.RELEVANCE_NONE,
        )
    else:
        expression = _column(term.key)
    if term.descending:
        return expression.desc().nulls_last()
    return expression.asc().nulls_last()


class SqlVideoStore(VideoStore):
    """Store backed by a SQLAlchemy session; one instance per request"""

    def __init__(self, session: Session):
        self.session = session

    def query(self, filter: Filter, order: Order, offset: int = 0,
              limit: Optional[int] = None) -> List[Video]:
        stmt = select(Video).where(*compile_filter(filter))
        offset = max(0, offset)

        if order.is_computed:
            # Scores depend on the request clock or a random draw
            candidates = self.session.scalars(stmt).all()
            ranked = order.sort(candidates)
            end = None if limit is None else offset + limit
            return ranked[offset:end]

        stmt = stmt.order_by(*[_sort_expression(term, order) for term in order.terms], Video.id.asc())
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.scalars(stmt).all())

    def count(self, filter: Filter) -> int:
        stmt = select(func.count(Video.id)).where(*compile_filter(filter))
        return self.session.scalar(stmt) or 0

    def get_by_id(self, video_id: int) -> Optional[Video]:
        return self.session.get(Video, video_id)

    def tag_values(self, filter: Filter) -> List[Optional[str]]:
        stmt = select(Video.tags).where(*compile_filter(filter), Video.tags.is_not(None))
        return list(self.session.scalars(stmt).all())

    def atomic_increment(self, video_id: int, field: str, delta: int) -> int:
        if field not in COUNTER_FIELDS:
            raise ValueError(f"Not a counter field: {field!r}")
        if delta not in (1, -1):
            raise ValueError(f"Counter delta must be +1 or -1, got {delta}")
        if field == "views" and delta < 0:
            raise ValueError("Views are increment-only")

        column = _column(field)
        if delta > 0:
            new_value = column + 1
        else:
            new_value = case((column > 0, column - 1), else_=0)

        stmt = (
            update(Video)
            .where(Video.id == video_id)
            .values({field: new_value})
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.session.execute(stmt)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise
        return result.rowcount

    def log_interaction(self, video_id: int, interaction_type: str,
                        metadata: Optional[Dict[str, Any]] = None) -> None:
        metadata = metadata or {}
        user_agent = metadata.get("user_agent")
        try:
            self.session.add(VideoInteraction(
                video_id=video_id,
                interaction_type=interaction_type,
                user_ip=metadata.get("user_ip"),
                user_agent=user_agent[:255] if user_agent else None,
            ))
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.warning(f"Interaction log write failed: {e}", extra={
                "video_id": video_id,
                "error_type": type(e).__name__,
            })

    def add(self, values: Dict[str, Any]) -> Video:
        video = Video(**values)
        try:
            self.session.add(video)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise
        self.session.refresh(video)
        return video

    def update_metadata(self, video_id: int, changes: Dict[str, Any]) -> Optional[Video]:
        unknown = set(changes) - METADATA_FIELDS
        if unknown:
            raise ValueError(f"Not editable: {sorted(unknown)}")

        video = self.get_by_id(video_id)
        if video is None:
            return None
        for name, value in changes.items():
            setattr(video, name, value)
        video.updated_at = datetime.now(timezone.utc)
        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise
        self.session.refresh(video)
        return video
