from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func

from scoreboard.core.database import Base


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id = Column(String, primary_key=True, index=True)
    email = Column(String, index=True)
    full_name = Column(String, nullable=True)
    role = Column(String, default="user")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
