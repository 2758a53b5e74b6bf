from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from scoreboard.core.database import Base
from scoreboard.models.scoreboard import _uuid

MAX_SLIDES_PER_CONFIG = 20


class KioskConfig(Base):
    __tablename__ = "kiosk_configs"

    id = Column(String, primary_key=True, default=_uuid)
    scoreboard_id = Column(String, ForeignKey("scoreboards.id", ondelete="CASCADE"), unique=True, nullable=False)
    slide_duration_seconds = Column(Integer, nullable=False, default=10)
    scoreboard_position = Column(Integer, nullable=False, default=0)
    enabled = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class KioskSlide(Base):
    __tablename__ = "kiosk_slides"
    __table_args__ = (
        UniqueConstraint("kiosk_config_id", "position", name="uq_kiosk_slides_config_position"),
        CheckConstraint("position >= 0", name="chk_kiosk_slides_position"),
    )

    id = Column(String, primary_key=True, default=_uuid)
    kiosk_config_id = Column(String, ForeignKey("kiosk_configs.id", ondelete="CASCADE"), index=True, nullable=False)
    position = Column(Integer, nullable=False)
    slide_type = Column(String, nullable=False)
    image_url = Column(String, nullable=True)
    thumbnail_url = Column(String, nullable=True)
    duration_override_seconds = Column(Integer, nullable=True)
    file_name = Column(String, nullable=True)
    file_size = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
