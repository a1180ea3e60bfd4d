"""Deployment model."""

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship
import uuid

from database import Base, utcnow


ENVIRONMENTS = ("DEVELOPMENT", "STAGING", "PRODUCTION")


class Deployment(Base):
    """A release of an app to one environment."""

    __tablename__ = "deployments"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    app_id = Column(String, ForeignKey("apps.id", ondelete="CASCADE"), nullable=False, index=True)
    environment = Column(String, nullable=False)
    version = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    deployed_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    app = relationship("App", back_populates="deployments")
