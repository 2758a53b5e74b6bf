from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String
from sqlalchemy.sql import func

from scoreboard.core.database import Base
from scoreboard.core.timeutils import utcnow


class PaymentHistory(Base):
    """One row per Lemon Squeezy order, upserted from order webhooks."""

    __tablename__ = "payment_history"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    lemonsqueezy_order_id = Column(String, unique=True, index=True, nullable=False)
    lemonsqueezy_subscription_id = Column(String, index=True, nullable=True)
    lemonsqueezy_customer_id = Column(String, nullable=True)
    lemonsqueezy_product_id = Column(String, nullable=True)
    lemonsqueezy_variant_id = Column(String, nullable=True)
    order_number = Column(Integer, nullable=True)
    order_identifier = Column(String, nullable=True)

    status = Column(String, nullable=False, default="paid")
    status_formatted = Column(String, nullable=True)
    currency = Column(String, nullable=False, default="USD")
    # Amounts in cents.
    subtotal = Column(Integer, nullable=False, default=0)
    discount_total = Column(Integer, nullable=False, default=0)
    tax = Column(Integer, nullable=False, default=0)
    total = Column(Integer, nullable=False, default=0)
    total_usd = Column(Integer, nullable=False, default=0)
    tax_name = Column(String, nullable=True)
    tax_rate = Column(Float, nullable=True)

    refunded = Column(Boolean, nullable=False, default=False)
    refunded_at = Column(DateTime(timezone=True), nullable=True)
    user_name = Column(String, nullable=True)
    user_email = Column(String, nullable=True)
    receipt_url = Column(String, nullable=True)
    test_mode = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)
