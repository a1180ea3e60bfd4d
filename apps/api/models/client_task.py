"""ClientTask model for task requests submitted through a share link."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from database import Base, utcnow


class ClientTask(Base):
    """Client-submitted task; status moves PENDING -> IN_PROGRESS -> COMPLETED or PENDING -> REJECTED."""

    __tablename__ = "client_tasks"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    share_code = Column(
        String(8),
        ForeignKey("share_links.code", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    client_name = Column(String, nullable=True)
    status = Column(String, nullable=False, default="PENDING", index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    share_link = relationship("ShareLink", back_populates="client_tasks")
    completion = relationship(
        "TaskCompletion",
        back_populates="task",
        uselist=False,
        passive_deletes=True,
    )
