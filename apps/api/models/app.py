"""App model for tracked software projects."""

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship
import uuid

from database import Base, utcnow


APP_STATUSES = (
    "IDEA",
    "PLANNING",
    "BUILDING",
    "TESTING",
    "DEPLOYING",
    "LIVE",
    "PAUSED",
    "ARCHIVED",
)


class App(Base):
    """A software project registered by an owner."""

    __tablename__ = "apps"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    proposed_domain = Column(String, nullable=True)
    github_url = Column(String, nullable=True)
    status = Column(String, nullable=False, default="PLANNING")
    client = Column(String, nullable=True)
    platform = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    owner = relationship("User", back_populates="apps")
    updates = relationship("AppUpdate", back_populates="app", cascade="all, delete-orphan", passive_deletes=True)
    deployments = relationship("Deployment", back_populates="app", cascade="all, delete-orphan", passive_deletes=True)
    share_links = relationship("ShareLink", back_populates="app", cascade="all, delete-orphan", passive_deletes=True)
