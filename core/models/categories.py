from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship
from core.db import Base


class Category(Base):
    """Video category"""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), nullable=False, unique=True)

    videos = relationship("Video", back_populates="category")
    series = relationship("Series", back_populates="category")
