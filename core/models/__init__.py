"""Core database models"""
from .categories import Category
from .series import Series
from .videos import Video, VideoStatus
from .video_interaction import VideoInteraction

__all__ = ["Category", "Series", "Video", "VideoStatus", "VideoInteraction"]
