"""Video discovery service: ranking engine calls with tracing and error mapping"""
import logging
import time
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from ranking.engine import RankingEngine
from ranking.errors import InvalidInputError, VideoNotFoundError
from ranking.pagination import FeedPage
from ranking.strategies import PUBLIC_STRATEGIES, FeedFilters
from service.dto import (
    CounterResponseDTO,
    FeedResponseDTO,
    RelatedResponseDTO,
    SearchResponseDTO,
    SuggestionDTO,
    TagCountDTO,
    VideoCreateDTO,
    VideoDTO,
)

logger = logging.getLogger(__name__)


class DomainValidationError(Exception):
    """Domain validation error for service layer"""
    def __init__(self, message: str, code: str = "VALIDATION_FAILED"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(Exception):
    """Requested video does not exist or is not public"""
    def __init__(self, message: str, code: str = "VIDEO_NOT_FOUND"):
        self.message = message
        self.code = code
        super().__init__(message)


class DependencyError(Exception):
    """Dependency error for external service failures"""
    def __init__(self, message: str, code: str = "DEPENDENCY_UNAVAILABLE"):
        self.message = message
        self.code = code
        super().__init__(message)


@contextmanager
def _service_call(operation: str, trace_id: str, **context) -> Iterator[None]:
    """Log timing and translate engine/store errors into service errors"""
    start_time = time.time()
    try:
        yield
    except VideoNotFoundError as e:
        logger.info(f"{operation}: video not found", extra={
            "trace_id": trace_id,
            "video_id": e.video_id,
        })
        raise NotFoundError(str(e))
    except InvalidInputError as e:
        logger.warning(f"{operation}: invalid input", extra={
            "trace_id": trace_id,
            "error_code": "VALIDATION_FAILED",
            "error_type": type(e).__name__,
        })
        raise DomainValidationError(str(e))
    except SQLAlchemyError as e:
        logger.error(f"{operation}: store failure: {e}", extra={
            "trace_id": trace_id,
            "error_code": "DEPENDENCY_UNAVAILABLE",
            "error_type": type(e).__name__,
        })
        raise DependencyError(f"Video store unavailable: {type(e).__name__}")
    else:
        logger.info(f"{operation} completed", extra={
            "trace_id": trace_id,
            "latency_ms": int((time.time() - start_time) * 1000),
            **context,
        })


def _feed_fields(feed: FeedPage) -> dict:
    return {
        "strategy": feed.strategy,
        "items": [VideoDTO.model_validate(video) for video in feed.items],
        "page": feed.page,
        "limit": feed.limit,
        "total_count": feed.total_count,
        "total_pages": feed.total_pages,
        "has_next_page": feed.has_next_page,
        "has_prev_page": feed.has_prev_page,
    }


def get_feed(
    strategy: str,
    filters: FeedFilters,
    page: int,
    limit: Optional[int],
    *,
    trace_id: str,
    engine: RankingEngine
) -> FeedResponseDTO:
    """
    Fetch one page of a public feed.

    Raises:
        DomainValidationError: Unknown or non-public strategy
        DependencyError: Video store failure
    """
    name = (strategy or "").strip().lower()
    with _service_call("Feed", trace_id, strategy=name, page=page):
        if name not in PUBLIC_STRATEGIES:
            raise InvalidInputError(f"Unknown feed strategy: {strategy!r}")
        feed = engine.get_feed(name, filters, page, limit)
        return FeedResponseDTO(**_feed_fields(feed))


def get_admin_feed(
    filters: FeedFilters,
    page: int,
    limit: Optional[int],
    *,
    trace_id: str,
    engine: RankingEngine
) -> FeedResponseDTO:
    """Management listing across every status"""
    with _service_call("Admin feed", trace_id, strategy="admin", page=page):
        feed = engine.get_feed("admin", filters, page, limit)
        return FeedResponseDTO(**_feed_fields(feed))


def search_videos(
    query: Optional[str],
    page: int,
    limit: Optional[int],
    *,
    trace_id: str,
    engine: RankingEngine
) -> SearchResponseDTO:
    with _service_call("Search", trace_id, strategy="search", page=page):
        result = engine.search(query, page, limit)
        return SearchResponseDTO(
            **_feed_fields(result),
            query=result.query,
            total_results=result.total_results,
        )


def get_video(video_id: int, *, trace_id: str, engine: RankingEngine) -> VideoDTO:
    with _service_call("Video lookup", trace_id, video_id=video_id):
        return VideoDTO.model_validate(engine.get_video(video_id))


def get_related(
    video_id: int,
    limit: Optional[int],
    *,
    trace_id: str,
    engine: RankingEngine
) -> RelatedResponseDTO:
    with _service_call("Related", trace_id, video_id=video_id):
        items = engine.get_related(video_id, limit)
        return RelatedResponseDTO(
            video_id=video_id,
            items=[VideoDTO.model_validate(video) for video in items],
        )


def get_suggestions(
    query: Optional[str],
    limit: Optional[int],
    *,
    trace_id: str,
    engine: RankingEngine
) -> List[SuggestionDTO]:
    with _service_call("Suggestions", trace_id):
        return [
            SuggestionDTO(suggestion=s.suggestion, type=s.type, count=s.count)
            for s in engine.suggest(query, limit)
        ]


def get_popular_tags(limit: Optional[int], *, trace_id: str, engine: RankingEngine) -> List[TagCountDTO]:
    with _service_call("Popular tags", trace_id):
        return [TagCountDTO(tag=t.tag, count=t.count) for t in engine.popular_tags(limit)]


def register_view(
    video_id: int,
    *,
    trace_id: str,
    engine: RankingEngine,
    user_ip: Optional[str] = None,
    user_agent: Optional[str] = None
) -> CounterResponseDTO:
    with _service_call("View", trace_id, video_id=video_id):
        views = engine.register_view(video_id, user_ip=user_ip, user_agent=user_agent)
        return CounterResponseDTO(video_id=video_id, views=views)


def register_like(
    video_id: int,
    *,
    trace_id: str,
    engine: RankingEngine,
    user_ip: Optional[str] = None,
    user_agent: Optional[str] = None
) -> CounterResponseDTO:
    with _service_call("Like", trace_id, video_id=video_id):
        likes = engine.register_like(video_id, user_ip=user_ip, user_agent=user_agent)
        return CounterResponseDTO(video_id=video_id, likes=likes)


def unregister_like(
    video_id: int,
    *,
    trace_id: str,
    engine: RankingEngine,
    user_ip: Optional[str] = None,
    user_agent: Optional[str] = None
) -> CounterResponseDTO:
    with _service_call("Unlike", trace_id, video_id=video_id):
        likes = engine.unregister_like(video_id, user_ip=user_ip, user_agent=user_agent)
        return CounterResponseDTO(video_id=video_id, likes=likes)


def create_video(dto: VideoCreateDTO, *, trace_id: str, engine: RankingEngine) -> VideoDTO:
    """Insert a validated video record (admin side, not routed publicly)"""
    with _service_call("Create video", trace_id):
        values = dto.model_dump()
        values["tags"] = ",".join(tag.strip() for tag in dto.tags if tag.strip()) or None
        video = engine.store.add(values)
        return VideoDTO.model_validate(video)
