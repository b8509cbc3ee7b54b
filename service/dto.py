"""Data Transfer Objects for service layer"""
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ranking.tags import split_tags


class VideoDTO(BaseModel):
    """Public view of a video record"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    duration: int = 0
    views: int = 0
    likes: int = 0
    category_id: Optional[int] = None
    series_id: Optional[int] = None
    episode_number: Optional[int] = None
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    @field_validator("tags", mode="before")
    @classmethod
    def split_tag_string(cls, v):
        if v is None or isinstance(v, str):
            return split_tags(v)
        return v


class VideoCreateDTO(BaseModel):
    """Admin-side video metadata for a new record"""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    duration: int = Field(..., ge=1)
    category_id: Optional[int] = None
    series_id: Optional[int] = None
    episode_number: Optional[int] = Field(default=None, ge=1)
    status: str = Field(default="draft", pattern="^(draft|published|archived|processing)$")

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Title is required")
        return v.strip()


class FeedResponseDTO(BaseModel):
    """One page of a ranked feed"""
    strategy: str
    items: List[VideoDTO]
    page: int
    limit: int
    total_count: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class SearchResponseDTO(FeedResponseDTO):
    query: str
    total_results: int


class RelatedResponseDTO(BaseModel):
    video_id: int
    items: List[VideoDTO]


class CounterResponseDTO(BaseModel):
    video_id: int
    views: Optional[int] = None
    likes: Optional[int] = None


class SuggestionDTO(BaseModel):
    suggestion: str
    type: str
    count: int


class TagCountDTO(BaseModel):
    tag: str
    count: int


class HealthResponseDTO(BaseModel):
    """Service layer DTO for health check responses"""
    ok: bool = True
    database: bool = True
    timestamp: Optional[str] = None
    version: Optional[str] = None
