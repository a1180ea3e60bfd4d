"""TaskCompletion model: evidence attached when an owner completes a client task."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from database import Base, utcnow


class TaskCompletion(Base):
    __tablename__ = "task_completions"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    task_id = Column(
        String,
        ForeignKey("client_tasks.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    completed_by = Column(String(200), nullable=False)
    feedback = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), default=utcnow)

    task = relationship("ClientTask", back_populates="completion")
