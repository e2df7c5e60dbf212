from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from subtracker.core.database import Base, utcnow


class Category(Base):
    """User-defined grouping of subscriptions."""

    __tablename__ = "categories"
    __table_args__ = (
        UniqueConstraint("name", "user_id", name="uq_categories_name_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Relationships
    user = relationship("User", back_populates="categories")
    # Rows are removed by the foreign key's ON DELETE CASCADE, not by the ORM.
    subscriptions = relationship("Subscription", back_populates="category", passive_deletes=True)
