from sqlalchemy import Column, Integer, BIGINT, String, TIMESTAMP, ForeignKey, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from core.db import Base


class VideoInteraction(Base):
    """Append-only log of viewer interactions for later analytics"""
    __tablename__ = "video_interactions"

    id = Column(BIGINT().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    video_id = Column(Integer, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False)
    interaction_type = Column(String(20), nullable=False, comment="view, like or unlike")
    user_ip = Column(String(64), nullable=True)
    user_agent = Column(String(255), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False,
                        default=func.now(), comment="Event time (UTC)")

    video = relationship("Video", back_populates="interactions")

    __table_args__ = (
        Index("idx_interactions_video_created", "video_id", "created_at"),
        Index("idx_interactions_created", "created_at"),
    )
