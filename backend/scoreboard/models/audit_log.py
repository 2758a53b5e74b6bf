from sqlalchemy import JSON, Column, DateTime, Integer, String

from scoreboard.core.database import Base
from scoreboard.core.timeutils import utcnow


class AdminAuditLog(Base):
    """Append-only record of privileged mutations. Rows are never updated or deleted."""

    __tablename__ = "admin_audit_log"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(String, index=True, nullable=False)
    action = Column(String, index=True, nullable=False)
    target_user_id = Column(String, index=True, nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
