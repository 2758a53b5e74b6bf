from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from scoreboard.core.database import Base
from scoreboard.core.timeutils import utcnow


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    status = Column(String, index=True, nullable=False)
    status_formatted = Column(String, nullable=True)
    tier = Column(String, index=True, nullable=False)
    billing_interval = Column(String, nullable=False, default="monthly")
    amount_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String, nullable=False, default="USD")
    is_gifted = Column(Boolean, nullable=False, default=False)
    gifted_expires_at = Column(DateTime(timezone=True), nullable=True)
    # For cancelled subscriptions this holds the provider's ends_at, i.e. the
    # moment entitlement actually lapses.
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    lemonsqueezy_subscription_id = Column(String, unique=True, index=True, nullable=True)
    lemonsqueezy_customer_id = Column(String, index=True, nullable=True)
    lemonsqueezy_order_id = Column(String, nullable=True)
    lemonsqueezy_product_id = Column(String, nullable=True)
    lemonsqueezy_variant_id = Column(String, nullable=True)

    card_brand = Column(String, nullable=True)
    card_last_four = Column(String, nullable=True)
    customer_portal_url = Column(String, nullable=True)
    update_payment_method_url = Column(String, nullable=True)
    customer_portal_update_subscription_url = Column(String, nullable=True)
    test_mode = Column(Boolean, nullable=False, default=False)

    current_period_start = Column(DateTime(timezone=True), nullable=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    version = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}
