"""AppUpdate model for periodic progress reports."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship
import uuid

from database import Base, utcnow


UPDATE_PERIODS = ("DAY", "WEEK", "MONTH")


class AppUpdate(Base):
    """Progress snapshot for an app."""

    __tablename__ = "app_updates"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    app_id = Column(String, ForeignKey("apps.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(String, ForeignKey("users.id"), nullable=False)
    progress = Column(Integer, nullable=False, default=0)  # 0-100
    summary = Column(Text, nullable=False)
    blockers = Column(Text, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    period = Column(String, nullable=False, default="WEEK")
    date = Column(DateTime(timezone=True), default=utcnow, index=True)

    app = relationship("App", back_populates="updates")
