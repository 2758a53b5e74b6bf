from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from scoreboard.core.errors import bad_request, conflict
from scoreboard.core.timeutils import parse_iso8601
from scoreboard.models.enums import SubscriptionStatus
from scoreboard.models.payment_history import PaymentHistory
from scoreboard.models.subscription import Subscription
from scoreboard.schemas.subscription import SubscriptionResponse
from scoreboard.services.pricing import PricingCache, PricingNotFoundError
from scoreboard.services.variant_mapping import TierInterval, VariantTable

logger = logging.getLogger(__name__)

CONCURRENT_MODIFICATION = "Subscription was modified concurrently. Reload and retry."

SUBSCRIPTION_EVENTS = {
    "subscription_created",
    "subscription_updated",
    "subscription_cancelled",
    "subscription_resumed",
    "subscription_expired",
    "subscription_paused",
    "subscription_unpaused",
}

_KNOWN_STATUSES = {
    SubscriptionStatus.ACTIVE.value,
    SubscriptionStatus.PAUSED.value,
    SubscriptionStatus.PAST_DUE.value,
    SubscriptionStatus.EXPIRED.value,
    SubscriptionStatus.CANCELLED.value,
    SubscriptionStatus.UNPAID.value,
}


def normalize_status(raw: object) -> str:
    status = str(raw or "").strip().lower()
    if status == SubscriptionStatus.ON_TRIAL.value:
        return SubscriptionStatus.TRIALING.value
    if status in _KNOWN_STATUSES:
        return status
    return SubscriptionStatus.ACTIVE.value


def _str_or_none(value: object) -> str | None:
    if value is None:
        return None
    v = str(value).strip()
    return v or None


def live_price_cents(attrs: dict[str, Any]) -> int | None:
    item = attrs.get("first_subscription_item") or {}
    if not isinstance(item, dict):
        return None
    try:
        price = int(item.get("price") or 0)
    except (TypeError, ValueError):
        return None
    return price if price > 0 else None


def resolve_amount_cents(db: Session, attrs: dict[str, Any], mapping: TierInterval, pricing_cache: PricingCache) -> int | None:
    """Charged amount: the live Lemon Squeezy price, else the cached ``tier_pricing`` row."""
    live = live_price_cents(attrs)
    if live is not None:
        return live
    try:
        return pricing_cache.get_price_cents(db, mapping.tier, mapping.interval)
    except PricingNotFoundError:
        return None


def apply_remote_attributes(
    sub: Subscription,
    *,
    subscription_id: str,
    attrs: dict[str, Any],
    mapping: TierInterval,
    amount_cents: int,
) -> None:
    urls = attrs.get("urls") or {}
    if not isinstance(urls, dict):
        urls = {}
    item = attrs.get("first_subscription_item") or {}
    if not isinstance(item, dict):
        item = {}

    sub.lemonsqueezy_subscription_id = str(subscription_id)
    sub.lemonsqueezy_customer_id = _str_or_none(attrs.get("customer_id")) or sub.lemonsqueezy_customer_id
    sub.lemonsqueezy_order_id = _str_or_none(attrs.get("order_id")) or sub.lemonsqueezy_order_id
    sub.lemonsqueezy_product_id = _str_or_none(attrs.get("product_id")) or sub.lemonsqueezy_product_id
    sub.lemonsqueezy_variant_id = _str_or_none(attrs.get("variant_id")) or sub.lemonsqueezy_variant_id
    sub.status = normalize_status(attrs.get("status") or sub.status)
    sub.status_formatted = _str_or_none(attrs.get("status_formatted")) or sub.status_formatted
    sub.tier = mapping.tier.value
    sub.billing_interval = mapping.interval.value
    sub.amount_cents = int(amount_cents)
    sub.currency = _str_or_none(item.get("currency")) or sub.currency or "USD"
    sub.card_brand = _str_or_none(attrs.get("card_brand")) or sub.card_brand
    sub.card_last_four = _str_or_none(attrs.get("card_last_four")) or sub.card_last_four
    sub.current_period_start = parse_iso8601(attrs.get("created_at")) or sub.current_period_start
    sub.current_period_end = parse_iso8601(attrs.get("renews_at")) or sub.current_period_end
    sub.cancelled_at = parse_iso8601(attrs.get("ends_at")) if attrs.get("cancelled") else None
    sub.customer_portal_url = _str_or_none(urls.get("customer_portal")) or sub.customer_portal_url
    sub.update_payment_method_url = _str_or_none(urls.get("update_payment_method")) or sub.update_payment_method_url
    sub.customer_portal_update_subscription_url = (
        _str_or_none(urls.get("customer_portal_update_subscription")) or sub.customer_portal_update_subscription_url
    )
    sub.test_mode = bool(attrs.get("test_mode", sub.test_mode or False))
    sub.is_gifted = False
    sub.gifted_expires_at = None


def commit_or_conflict(db: Session) -> None:
    """Commit, turning optimistic-lock and unique-key races into a 409."""
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        raise conflict(CONCURRENT_MODIFICATION)
    except IntegrityError:
        db.rollback()
        raise conflict(CONCURRENT_MODIFICATION)


def serialize_subscription(sub: Subscription | None) -> dict[str, Any] | None:
    if sub is None:
        return None
    return SubscriptionResponse.model_validate(sub).model_dump(mode="json")


def _int_or_zero(value: object) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _rate_or_none(value: object) -> float | None:
    try:
        return float(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def record_order(db: Session, user_id: str, data: dict[str, Any], *, event_name: str) -> PaymentHistory:
    """Upsert one ``payment_history`` row per order id, so redelivered events update in place."""
    order_id = str(data.get("id") or "").strip()
    attrs = data.get("attributes") or {}
    if not order_id or not isinstance(attrs, dict):
        raise bad_request("Missing order data")
    item = attrs.get("first_order_item") or {}
    if not isinstance(item, dict):
        item = {}
    urls = attrs.get("urls") or {}
    if not isinstance(urls, dict):
        urls = {}

    row = db.query(PaymentHistory).filter(PaymentHistory.lemonsqueezy_order_id == order_id).first()
    if row is None:
        row = PaymentHistory(lemonsqueezy_order_id=order_id)
        db.add(row)
    row.user_id = user_id
    row.lemonsqueezy_subscription_id = _str_or_none(attrs.get("subscription_id")) or row.lemonsqueezy_subscription_id
    row.lemonsqueezy_customer_id = _str_or_none(attrs.get("customer_id"))
    row.lemonsqueezy_product_id = _str_or_none(item.get("product_id"))
    row.lemonsqueezy_variant_id = _str_or_none(item.get("variant_id"))
    row.order_number = _int_or_zero(attrs.get("order_number")) or None
    row.order_identifier = _str_or_none(attrs.get("identifier"))
    row.status = _str_or_none(attrs.get("status")) or "paid"
    row.status_formatted = _str_or_none(attrs.get("status_formatted"))
    row.currency = _str_or_none(attrs.get("currency")) or "USD"
    row.subtotal = _int_or_zero(attrs.get("subtotal"))
    row.discount_total = _int_or_zero(attrs.get("discount_total"))
    row.tax = _int_or_zero(attrs.get("tax"))
    row.total = _int_or_zero(attrs.get("total"))
    row.total_usd = _int_or_zero(attrs.get("total_usd"))
    row.tax_name = _str_or_none(attrs.get("tax_name"))
    row.tax_rate = _rate_or_none(attrs.get("tax_rate"))
    row.refunded = bool(attrs.get("refunded"))
    row.refunded_at = parse_iso8601(attrs.get("refunded_at"))
    row.user_name = _str_or_none(attrs.get("user_name"))
    row.user_email = _str_or_none(attrs.get("user_email"))
    row.receipt_url = _str_or_none(urls.get("receipt"))
    row.test_mode = bool(attrs.get("test_mode"))
    commit_or_conflict(db)
    logger.info(
        "webhook.order.recorded event=%s user_id=%s order_id=%s status=%s total=%s",
        event_name,
        user_id,
        order_id,
        row.status,
        row.total,
    )
    return row


def handle_webhook_event(
    db: Session,
    payload: dict[str, Any],
    *,
    event_name: str,
    variant_table: VariantTable,
    pricing_cache: PricingCache,
) -> dict[str, Any]:
    """Mirror a verified Lemon Squeezy event into ``subscriptions`` or ``payment_history``.

    Subscription rows are keyed on the external subscription id, order rows on
    the order id. Anything else is acknowledged without being stored.
    """
    meta = payload.get("meta") or {}
    custom_data = meta.get("custom_data") or {}
    user_id = str(custom_data.get("user_id") or "").strip()
    if not user_id:
        raise bad_request("Missing user_id in custom_data")

    data = payload.get("data") or {}
    if data.get("type") == "orders":
        record_order(db, user_id, data, event_name=event_name)
        return {"received": True}

    if event_name not in SUBSCRIPTION_EVENTS:
        logger.info("webhook.ignored event=%s user_id=%s", event_name, user_id)
        return {"received": True}

    subscription_id = str(data.get("id") or "").strip()
    attrs = data.get("attributes") or {}
    if not subscription_id or not isinstance(attrs, dict):
        raise bad_request("Missing subscription data")

    variant_id = _str_or_none(attrs.get("variant_id"))
    mapping = variant_table.map_variant_to_tier_and_interval(variant_id)
    if mapping is None:
        logger.warning("webhook.unknown_variant event=%s variant_id=%s", event_name, variant_id)
        raise bad_request(f"Unknown variant: {variant_id}")

    amount_cents = resolve_amount_cents(db, attrs, mapping, pricing_cache)

    sub = db.query(Subscription).filter(Subscription.lemonsqueezy_subscription_id == subscription_id).first()
    if sub is None:
        sub = Subscription(user_id=user_id)
        db.add(sub)
    apply_remote_attributes(
        sub,
        subscription_id=subscription_id,
        attrs=attrs,
        mapping=mapping,
        amount_cents=amount_cents or 0,
    )
    commit_or_conflict(db)
    logger.info(
        "webhook.subscription.synced event=%s user_id=%s subscription_id=%s status=%s tier=%s",
        event_name,
        user_id,
        subscription_id,
        sub.status,
        sub.tier,
    )

    live = live_price_cents(attrs)
    if live is not None:
        pricing_cache.sync_price_if_changed(db, mapping.tier, mapping.interval, live, variant_id)

    return {"received": True}
