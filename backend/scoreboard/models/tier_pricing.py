from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from scoreboard.core.database import Base
from scoreboard.core.timeutils import utcnow


class TierPricing(Base):
    __tablename__ = "tier_pricing"
    __table_args__ = (
        UniqueConstraint("tier", "billing_interval", name="uq_tier_pricing_tier_interval"),
        CheckConstraint("amount_cents >= 0", name="chk_tier_pricing_amount"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tier = Column(String, nullable=False)
    billing_interval = Column(String, nullable=False)
    amount_cents = Column(Integer, nullable=False)
    currency = Column(String, nullable=False, default="USD")
    lemonsqueezy_variant_id = Column(String, nullable=False, default="")
    last_synced_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)
