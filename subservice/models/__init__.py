"""
SQLAlchemy models for the subscription store.
"""
from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, Date, Index, Integer, Text, Uuid
from sqlalchemy.orm import declarative_base

from subservice.core.months import first_of_month
from subservice.models.subscription import Subscription

Base = declarative_base()


class SubscriptionRecord(Base):
    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_subscriptions_price_non_negative"),
        Index("ix_subscriptions_period", "start_date", "end_date"),
    )

    id = Column(Uuid, primary_key=True)
    user_id = Column(Text, nullable=False, index=True)
    service_name = Column(Text, nullable=False)
    price = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date)

    def to_domain(self) -> Subscription:
        return Subscription(
            id=str(self.id),
            user_id=self.user_id,
            service_name=self.service_name,
            price=self.price,
            start_date=first_of_month(self.start_date),
            end_date=first_of_month(self.end_date) if self.end_date else None,
        )


__all__ = ["Base", "Subscription", "SubscriptionRecord"]
