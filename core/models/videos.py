import enum

from sqlalchemy import Column, Integer, String, Text, TIMESTAMP, ForeignKey, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from core.db import Base


class VideoStatus(str, enum.Enum):
    """Lifecycle status; only PUBLISHED is publicly discoverable"""
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"
    PROCESSING = "processing"


class Video(Base):
    """Short video record with engagement counters"""
    __tablename__ = "videos"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False, comment="Display title")
    description = Column(Text, comment="Free text description")
    tags = Column(Text, comment="Comma separated tag labels")
    duration = Column(Integer, nullable=False, default=0, comment="Length in seconds")
    views = Column(Integer, nullable=False, default=0, server_default="0")
    likes = Column(Integer, nullable=False, default=0, server_default="0")
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    series_id = Column(Integer, ForeignKey("series.id", ondelete="SET NULL"), nullable=True)
    episode_number = Column(Integer, nullable=True, comment="Ordinal within series")
    status = Column(String(20), nullable=False, default=VideoStatus.DRAFT.value,
                    server_default=VideoStatus.DRAFT.value)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False,
                        default=func.now(), comment="Insert time (UTC)")
    # Bumped explicitly on metadata edits; counter updates leave it alone
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False,
                        default=func.now(), comment="Last metadata edit (UTC)")

    category = relationship("Category", back_populates="videos")
    series = relationship("Series", back_populates="videos")
    interactions = relationship("VideoInteraction", back_populates="video",
                                cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        Index("idx_videos_status", "status"),
        Index("idx_videos_created", "created_at"),
        Index("idx_videos_views", "views"),
        Index("idx_videos_likes", "likes"),
        Index("idx_videos_category", "category_id"),
        Index("idx_videos_series", "series_id"),
    )

    def __repr__(self) -> str:
        return f"<Video id={self.id} title={self.title!r} status={self.status}>"
