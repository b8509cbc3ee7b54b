import logging
from datetime import datetime
from typing import Callable, List, Optional, TypeVar

from fastapi import APIRouter, HTTPException, Depends, Query, Request

from app.deps.common import get_ranking_engine, get_trace_id, limit_param, page_param
from ranking.engine import RankingEngine
from ranking.strategies import FeedFilters
from service import videos_service
from service.dto import (
    CounterResponseDTO,
    FeedResponseDTO,
    RelatedResponseDTO,
    SearchResponseDTO,
    SuggestionDTO,
    TagCountDTO,
    VideoDTO,
)
from service.videos_service import DependencyError, DomainValidationError, NotFoundError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/videos", tags=["videos"])

T = TypeVar("T")


def _error(status_code: int, code: str, message: str, trace_id: str) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={
            "error": {
                "code": code,
                "message": message,
                "trace_id": trace_id
            }
        }
    )


def _run(call: Callable[[], T], trace_id: str) -> T:
    """Invoke a service call and map its errors onto HTTP responses"""
    try:
        return call()

    except DomainValidationError as e:
        raise _error(422, e.code, e.message, trace_id)

    except NotFoundError as e:
        raise _error(404, e.code, e.message, trace_id)

    except DependencyError as e:
        raise _error(503, e.code, e.message, trace_id)

    except Exception as e:
        logger.error("Unexpected error", extra={
            "trace_id": trace_id,
            "error_type": type(e).__name__,
        })
        raise _error(500, "INTERNAL_ERROR", "Internal server error", trace_id)


def _client(request: Request) -> dict:
    return {
        "user_ip": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }


@router.get("/search", response_model=SearchResponseDTO)
def search_videos(
    q: Optional[str] = None,
    page: int = Depends(page_param),
    limit: Optional[int] = Depends(limit_param),
    trace_id: str = Depends(get_trace_id),
    engine: RankingEngine = Depends(get_ranking_engine)
) -> SearchResponseDTO:
    """Search published videos; a blank query returns an empty page"""
    return _run(lambda: videos_service.search_videos(
        q, page, limit, trace_id=trace_id, engine=engine
    ), trace_id)


@router.get("/suggestions", response_model=List[SuggestionDTO])
def search_suggestions(
    q: Optional[str] = None,
    limit: Optional[int] = Depends(limit_param),
    trace_id: str = Depends(get_trace_id),
    engine: RankingEngine = Depends(get_ranking_engine)
) -> List[SuggestionDTO]:
    return _run(lambda: videos_service.get_suggestions(
        q, limit, trace_id=trace_id, engine=engine
    ), trace_id)


@router.get("/tags/popular", response_model=List[TagCountDTO])
def popular_tags(
    limit: Optional[int] = Depends(limit_param),
    trace_id: str = Depends(get_trace_id),
    engine: RankingEngine = Depends(get_ranking_engine)
) -> List[TagCountDTO]:
    return _run(lambda: videos_service.get_popular_tags(
        limit, trace_id=trace_id, engine=engine
    ), trace_id)


@router.get("/feed/{strategy}", response_model=FeedResponseDTO)
def get_feed(
    strategy: str,
    page: int = Depends(page_param),
    limit: Optional[int] = Depends(limit_param),
    q: Optional[str] = None,
    tag: Optional[str] = None,
    window: Optional[str] = None,
    category_id: Optional[int] = None,
    series_id: Optional[int] = None,
    min_duration: Optional[int] = None,
    max_duration: Optional[int] = None,
    min_views: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    preferred_tags: List[str] = Query(default=[]),
    trace_id: str = Depends(get_trace_id),
    engine: RankingEngine = Depends(get_ranking_engine)
) -> FeedResponseDTO:
    """Ranked, paginated feed for one of the public strategies"""
    filters = FeedFilters(
        query=q,
        tag=tag,
        window=window,
        category_id=category_id,
        series_id=series_id,
        min_duration=min_duration,
        max_duration=max_duration,
        min_views=min_views,
        start_date=start_date,
        end_date=end_date,
        sort_by=sort_by,
        sort_order=sort_order,
        preferred_tags=preferred_tags,
    )
    return _run(lambda: videos_service.get_feed(
        strategy, filters, page, limit, trace_id=trace_id, engine=engine
    ), trace_id)


@router.get("/{video_id}", response_model=VideoDTO)
def get_video(
    video_id: int,
    trace_id: str = Depends(get_trace_id),
    engine: RankingEngine = Depends(get_ranking_engine)
) -> VideoDTO:
    return _run(lambda: videos_service.get_video(video_id, trace_id=trace_id, engine=engine), trace_id)


@router.get("/{video_id}/related", response_model=RelatedResponseDTO)
def related_videos(
    video_id: int,
    limit: Optional[int] = Depends(limit_param),
    trace_id: str = Depends(get_trace_id),
    engine: RankingEngine = Depends(get_ranking_engine)
) -> RelatedResponseDTO:
    return _run(lambda: videos_service.get_related(
        video_id, limit, trace_id=trace_id, engine=engine
    ), trace_id)


@router.post("/{video_id}/view", response_model=CounterResponseDTO)
def register_view(
    video_id: int,
    request: Request,
    trace_id: str = Depends(get_trace_id),
    engine: RankingEngine = Depends(get_ranking_engine)
) -> CounterResponseDTO:
    return _run(lambda: videos_service.register_view(
        video_id, trace_id=trace_id, engine=engine, **_client(request)
    ), trace_id)


@router.post("/{video_id}/like", response_model=CounterResponseDTO)
def like_video(
    video_id: int,
    request: Request,
    trace_id: str = Depends(get_trace_id),
    engine: RankingEngine = Depends(get_ranking_engine)
) -> CounterResponseDTO:
    return _run(lambda: videos_service.register_like(
        video_id, trace_id=trace_id, engine=engine, **_client(request)
    ), trace_id)


@router.delete("/{video_id}/like", response_model=CounterResponseDTO)
def unlike_video(
    video_id: int,
    request: Request,
    trace_id: str = Depends(get_trace_id),
    engine: RankingEngine = Depends(get_ranking_engine)
) -> CounterResponseDTO:
    return _run(lambda: videos_service.unregister_like(
        video_id, trace_id=trace_id, engine=engine, **_client(request)
    ), trace_id)
