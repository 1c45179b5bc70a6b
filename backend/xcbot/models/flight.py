"""Ledger of processed flights. Row existence means subscribers were already notified; rows are never deleted."""
from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from xcbot.db.base import Base


class Flight(Base):
    __tablename__ = "flights"

    id = Column(Integer, primary_key=True, autoincrement=True)
    url = Column(String(512), nullable=False, unique=True)
    title = Column(String(512), nullable=False)
    pilot_username = Column(String(128), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
