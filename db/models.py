from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint
from datetime import datetime

from db import database


class DailyPuzzleState(database.Base):
    """One persisted daily entry per player and calendar day."""
    __tablename__ = "daily_puzzle_states"
    __table_args__ = (
        UniqueConstraint("owner_id", "storage_key", name="uq_daily_puzzle_states_owner_key"),
    )

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String(64), nullable=False, index=True)
    storage_key = Column(String(64), nullable=False)  # dailyPuzzle-YYYY-MM-DD
    payload = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
