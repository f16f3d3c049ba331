"""Database models for TrendPulse."""
from sqlalchemy import (
    Column, String, DateTime, Text, Integer, Float, JSON, Index, UniqueConstraint
)
from sqlalchemy.sql import func

from .db import Base


class Trend(Base):
    """Ranked trend rows, one list per category (including 'overall')."""
    __tablename__ = "trends"

    id = Column(Integer, primary_key=True, autoincrement=True)
    category = Column(String(16), nullable=False, index=True)
    rank = Column(Integer, nullable=False)
    title = Column(String(500), nullable=False)
    summary = Column(Text, nullable=True)
    source_url = Column(String(1500), nullable=True)
    source_name = Column(String(200), nullable=True)
    change_rate = Column(Float, nullable=True)
    # "metadata" is reserved on declarative classes
    payload = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (UniqueConstraint("category", "rank", name="uq_trends_category_rank"),)

    def to_record(self):
        return {
            "category": self.category,
            "rank": self.rank,
            "title": self.title,
            "summary": self.summary,
            "source_url": self.source_url,
            "source_name": self.source_name,
            "change_rate": self.change_rate,
            "metadata": self.payload or {},
            "updated_at": self.updated_at,
        }


Index("idx_trends_category_rank", Trend.category, Trend.rank)
