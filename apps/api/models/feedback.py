"""Feedback model for client comments left through a share link."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from database import Base, utcnow


class Feedback(Base):
    """Immutable client comment keyed by share code."""

    __tablename__ = "feedbacks"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    share_code = Column(
        String(8),
        ForeignKey("share_links.code", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    client_name = Column(String, nullable=True)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    share_link = relationship("ShareLink", back_populates="feedbacks")
