from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from subtracker.core.database import Base, utcnow


class User(Base):
    """Account holder; owns categories and subscriptions."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(150), nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    categories = relationship("Category", back_populates="user", passive_deletes=True)
