from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from scoreboard.core.database import Base


def _uuid() -> str:
    return str(uuid4())


class Scoreboard(Base):
    __tablename__ = "scoreboards"

    id = Column(String, primary_key=True, default=_uuid)
    owner_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False, default="")
    visibility = Column(String, index=True, nullable=False, default="public")
    is_locked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ScoreboardEntry(Base):
    __tablename__ = "scoreboard_entries"

    id = Column(String, primary_key=True, default=_uuid)
    scoreboard_id = Column(String, ForeignKey("scoreboards.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String, nullable=False, default="")
    score = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
