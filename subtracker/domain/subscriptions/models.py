from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from subtracker.core.database import Base, utcnow


class Subscription(Base):
    """Recurring-cost record belonging to one category and one user."""

    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint("renewal_date BETWEEN 1 AND 31", name="ck_subscriptions_renewal_date"),
        CheckConstraint("cost >= 0", name="ck_subscriptions_cost"),
        Index("ix_subscriptions_user_category", "user_id", "category_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    cost = Column(Numeric(10, 2), nullable=False)
    billing_cycle = Column(String(10), nullable=False)  # day, week, month, annual
    renewal_date = Column(Integer, nullable=False)  # day of month, 1-31
    account_info = Column(Text, nullable=False, default="")
    category_id = Column(
        Integer,
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    cancelled_at = Column(DateTime, nullable=True)

    # Relationships
    category = relationship("Category", back_populates="subscriptions")

    @property
    def is_cancelled(self) -> bool:
        return self.cancelled_at is not None
