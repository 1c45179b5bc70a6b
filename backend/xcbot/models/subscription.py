"""A user following a pilot. Unique per (user_id, lower(pilot_username))."""
from sqlalchemy import Column, ForeignKey, Index, Integer, String, func

from xcbot.db.base import Base


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    pilot_username = Column(String(128), nullable=False)


Index(
    "uq_subscriptions_user_pilot",
    Subscription.user_id,
    func.lower(Subscription.pilot_username),
    unique=True,
)
Index("ix_subscriptions_pilot_lower", func.lower(Subscription.pilot_username))
