from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from scoreboard.models.enums import BillingInterval, Tier


class SubscriptionResponse(BaseModel):
    id: int
    user_id: str
    status: str
    status_formatted: Optional[str] = None
    tier: str
    billing_interval: str
    amount_cents: int
    currency: str
    is_gifted: bool
    gifted_expires_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    lemonsqueezy_subscription_id: Optional[str] = None
    lemonsqueezy_customer_id: Optional[str] = None
    lemonsqueezy_variant_id: Optional[str] = None
    card_brand: Optional[str] = None
    card_last_four: Optional[str] = None
    customer_portal_url: Optional[str] = None
    update_payment_method_url: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    test_mode: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TierPriceResponse(BaseModel):
    tier: str
    billing_interval: str
    amount_cents: int
    currency: str
    lemonsqueezy_variant_id: str
    last_synced_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GiftRequest(BaseModel):
    expires_at: Optional[str] = None


class LinkRequest(BaseModel):
    lemonsqueezy_subscription_id: str
    override: bool = False


class SubscriptionActionRequest(BaseModel):
    subscription_id: str


class CheckoutRequest(BaseModel):
    tier: Tier
    billing_interval: BillingInterval = BillingInterval.MONTHLY


class UpdateSubscriptionRequest(BaseModel):
    subscription_id: str
    tier: Tier
    billing_interval: BillingInterval


class VerifyLinkRequest(BaseModel):
    lemonsqueezy_subscription_id: str
