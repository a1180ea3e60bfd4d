"""User model."""

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
import uuid

from database import Base, utcnow


class User(Base):
    """Owner account; every app belongs to exactly one user."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    # Relationships
    apps = relationship("App", back_populates="owner", cascade="all, delete-orphan")
