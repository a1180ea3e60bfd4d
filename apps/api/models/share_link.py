"""ShareLink model for scoped public access to a single app."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import relationship

from database import Base, utcnow


class ShareLink(Base):
    """Capability token granting view/comment/create_tasks rights on one app."""

    __tablename__ = "share_links"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    code = Column(String(8), nullable=False, unique=True, index=True)
    app_id = Column(String, ForeignKey("apps.id", ondelete="CASCADE"), nullable=False, index=True)
    permissions = Column(JSON, nullable=False)  # {"view", "comment", "create_tasks"}
    is_active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    last_accessed_at = Column(DateTime(timezone=True), nullable=True)
    access_count = Column(Integer, nullable=False, default=0)

    app = relationship("App", back_populates="share_links")
    feedbacks = relationship("Feedback", back_populates="share_link", passive_deletes=True)
    client_tasks = relationship("ClientTask", back_populates="share_link", passive_deletes=True)
