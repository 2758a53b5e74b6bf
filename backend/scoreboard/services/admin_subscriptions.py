from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scoreboard.core.errors import OperationError, bad_request, not_found
from scoreboard.core.security import CurrentUser
from scoreboard.core.settings import settings
from scoreboard.core.timeutils import as_utc, isoformat_or_none, parse_iso8601, utcnow
from scoreboard.models.audit_log import AdminAuditLog
from scoreboard.models.enums import BillingInterval, SubscriptionStatus, Tier
from scoreboard.models.profile import UserProfile
from scoreboard.models.subscription import Subscription
from scoreboard.services.entitlements import ACTIVE_STATUSES, get_current_subscription, is_entitled
from scoreboard.services.lemonsqueezy import LemonSqueezyClient, LemonSqueezyError
from scoreboard.services.pricing import PricingCache, PricingNotFoundError
from scoreboard.services.subscription_sync import (
    apply_remote_attributes,
    commit_or_conflict,
    live_price_cents,
    normalize_status,
    resolve_amount_cents,
    serialize_subscription,
)
from scoreboard.services.variant_mapping import VariantTable

logger = logging.getLogger(__name__)

ACTION_LABELS: dict[str, str] = {
    "cancel_subscription": "Cancelled Subscription",
    "resume_subscription": "Resumed Subscription",
    "link_subscription": "Linked Subscription",
    "gift_appreciation_tier": "Gifted Appreciation Tier",
    "remove_appreciation_tier": "Removed Appreciation Tier",
    "refetch_subscription": "Refetched Subscription",
    "sync_pricing": "Synced Pricing",
}

MAX_PAGE_SIZE = 100

PAYPAL_PORTAL_MESSAGE = "PayPal subscriptions must be updated through the customer portal."


def format_action_label(action: str) -> str:
    if action in ACTION_LABELS:
        return ACTION_LABELS[action]
    return " ".join(part.capitalize() for part in str(action or "").split("_") if part)


def record_audit(db: Session, *, admin_id: str, action: str, target_user_id: str | None, details: dict[str, Any]) -> bool:
    """Append an audit row. Failures are logged and never change the caller's outcome."""
    try:
        db.add(AdminAuditLog(admin_id=admin_id, action=action, target_user_id=target_user_id, details=details))
        db.commit()
        return True
    except SQLAlchemyError:
        db.rollback()
        logger.exception("audit.write.error action=%s admin_id=%s target_user_id=%s", action, admin_id, target_user_id)
        return False


def _get_profile(db: Session, user_id: str) -> UserProfile:
    profile = db.query(UserProfile).filter(UserProfile.id == user_id).first()
    if profile is None:
        raise not_found("User not found")
    return profile


def _upstream_error(e: LemonSqueezyError, fallback: str) -> OperationError:
    return OperationError(502, e.detail or fallback)


def gift_subscription(
    db: Session,
    admin: CurrentUser,
    user_id: str,
    expires_at: str | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    now = now or utcnow()
    expires_dt: datetime | None = None
    if expires_at:
        expires_dt = parse_iso8601(expires_at)
        if expires_dt is None:
            raise bad_request("Invalid expiration date format")
        if expires_dt <= now:
            raise bad_request("Expiration date must be in the future")

    target = _get_profile(db, user_id)
    if str(target.role or "").strip().lower() == settings.admin_role:
        raise bad_request("Cannot gift appreciation tier to admin users")

    existing = get_current_subscription(db, user_id)
    if existing is not None and existing.status in ACTIVE_STATUSES and not existing.is_gifted:
        raise bad_request(
            "User already has an active paid subscription. Cancel it first or wait for it to expire.",
            {"current_status": existing.status},
        )

    sub = existing
    if sub is None:
        sub = Subscription(user_id=user_id, created_at=now)
        db.add(sub)
    sub.status = SubscriptionStatus.ACTIVE.value
    sub.status_formatted = "Active (Gifted)"
    sub.tier = Tier.APPRECIATION.value
    sub.billing_interval = BillingInterval.MONTHLY.value
    sub.amount_cents = 0
    sub.currency = "USD"
    sub.is_gifted = True
    sub.gifted_expires_at = expires_dt
    sub.cancelled_at = None
    sub.lemonsqueezy_subscription_id = None
    sub.lemonsqueezy_customer_id = None
    sub.lemonsqueezy_order_id = None
    sub.lemonsqueezy_product_id = None
    sub.lemonsqueezy_variant_id = None
    sub.customer_portal_url = None
    sub.update_payment_method_url = None
    sub.customer_portal_update_subscription_url = None
    sub.card_brand = None
    sub.card_last_four = None
    sub.current_period_start = now
    sub.current_period_end = expires_dt
    sub.test_mode = False
    commit_or_conflict(db)
    logger.info("admin.gift.done admin_id=%s user_id=%s expires_at=%s", admin.id, user_id, expires_at or "never")

    record_audit(
        db,
        admin_id=admin.id,
        action="gift_appreciation_tier",
        target_user_id=user_id,
        details={
            "user_email": target.email,
            "expires_at": isoformat_or_none(expires_dt) or "never",
            "had_existing_subscription": existing is not None,
        },
    )
    return {
        "success": True,
        "message": "Appreciation tier gifted successfully",
        "expires_at": isoformat_or_none(expires_dt),
    }


def remove_gift(db: Session, admin: CurrentUser, user_id: str) -> dict[str, Any]:
    sub = get_current_subscription(db, user_id)
    if sub is None:
        raise not_found("No subscription found for this user")
    if not sub.is_gifted:
        raise bad_request("User does not have a gifted subscription")

    profile = db.query(UserProfile).filter(UserProfile.id == user_id).first()
    removed = {"removed_tier": sub.tier, "subscription_id": sub.id}
    db.delete(sub)
    commit_or_conflict(db)
    logger.info("admin.remove_gift.done admin_id=%s user_id=%s", admin.id, user_id)

    record_audit(
        db,
        admin_id=admin.id,
        action="remove_appreciation_tier",
        target_user_id=user_id,
        details={"user_email": profile.email if profile else None, **removed},
    )
    return {"success": True, "message": "Appreciation tier removed successfully"}


def verify_link(
    db: Session,
    lemonsqueezy_subscription_id: str,
    *,
    client: LemonSqueezyClient,
    variant_table: VariantTable,
    pricing_cache: PricingCache,
) -> dict[str, Any]:
    """Read-only preview of an external subscription before an admin links it."""
    ls_id = str(lemonsqueezy_subscription_id or "").strip()
    if not ls_id:
        raise bad_request("LemonSqueezy subscription ID is required")

    try:
        remote = client.get_subscription(ls_id)
    except LemonSqueezyError as e:
        if e.status_code == 404:
            raise not_found("LemonSqueezy subscription not found")
        raise OperationError(502, "Failed to fetch subscription from LemonSqueezy")
    data = remote.get("data") or {}
    attrs = data.get("attributes") or {}

    mapping = variant_table.map_variant_to_tier_and_interval(attrs.get("variant_id"))
    amount_cents = resolve_amount_cents(db, attrs, mapping, pricing_cache) if mapping else live_price_cents(attrs)
    item = attrs.get("first_subscription_item") or {}
    if not isinstance(item, dict):
        item = {}

    linked = db.query(Subscription).filter(Subscription.lemonsqueezy_subscription_id == ls_id).first()
    linked_user = None
    if linked is not None:
        profile = db.query(UserProfile).filter(UserProfile.id == linked.user_id).first()
        linked_user = {
            "user_id": linked.user_id,
            "email": profile.email if profile else None,
            "full_name": profile.full_name if profile else None,
        }

    return {
        "success": True,
        "subscription": {
            "id": data.get("id") or ls_id,
            "customer_email": attrs.get("user_email"),
            "customer_name": attrs.get("user_name"),
            "status": attrs.get("status"),
            "status_formatted": attrs.get("status_formatted"),
            "tier": mapping.tier.value if mapping else None,
            "billing_interval": mapping.interval.value if mapping else None,
            "amount_cents": amount_cents,
            "currency": item.get("currency") or "USD",
            "renews_at": attrs.get("renews_at"),
            "ends_at": attrs.get("ends_at"),
            "cancelled": bool(attrs.get("cancelled")),
            "test_mode": bool(attrs.get("test_mode")),
            "created_at": attrs.get("created_at"),
        },
        "already_linked": linked is not None,
        "linked_user": linked_user,
    }


def link_subscription(
    db: Session,
    admin: CurrentUser,
    user_id: str,
    lemonsqueezy_subscription_id: str,
    *,
    override: bool,
    client: LemonSqueezyClient,
    variant_table: VariantTable,
    pricing_cache: PricingCache,
) -> dict[str, Any]:
    ls_id = str(lemonsqueezy_subscription_id or "").strip()
    if not ls_id:
        raise bad_request("LemonSqueezy subscription ID is required")

    target = _get_profile(db, user_id)

    try:
        remote = client.get_subscription(ls_id)
    except LemonSqueezyError as e:
        if e.status_code == 404:
            raise not_found("LemonSqueezy subscription not found")
        raise OperationError(502, "Failed to fetch subscription from LemonSqueezy")
    attrs = ((remote.get("data") or {}).get("attributes") or {})

    customer_email = str(attrs.get("user_email") or "").strip()
    email_mismatch = customer_email.lower() != str(target.email or "").strip().lower()
    if email_mismatch and not override:
        raise bad_request(
            "Email mismatch",
            {
                "user_email": target.email,
                "subscription_email": customer_email,
                "message": "LemonSqueezy subscription email does not match user email. Set override=true to force link.",
            },
        )

    linked = db.query(Subscription).filter(Subscription.lemonsqueezy_subscription_id == ls_id).first()
    if linked is not None and linked.user_id != user_id:
        raise bad_request("Subscription already linked to another user", {"linked_user_id": linked.user_id})

    variant_id = attrs.get("variant_id")
    mapping = variant_table.map_variant_to_tier_and_interval(variant_id)
    if mapping is None:
        raise bad_request(f"Unknown variant: {variant_id}. Configure its LEMONSQUEEZY_*_VARIANT_ID first.")

    amount_cents = resolve_amount_cents(db, attrs, mapping, pricing_cache)
    if amount_cents is None:
        raise bad_request(f"No pricing found for {mapping.tier.value}/{mapping.interval.value}")

    sub = linked or get_current_subscription(db, user_id)
    if sub is None:
        sub = Subscription(user_id=user_id)
        db.add(sub)
    apply_remote_attributes(sub, subscription_id=ls_id, attrs=attrs, mapping=mapping, amount_cents=amount_cents)
    commit_or_conflict(db)
    logger.info(
        "admin.link.done admin_id=%s user_id=%s subscription_id=%s tier=%s interval=%s",
        admin.id,
        user_id,
        ls_id,
        mapping.tier.value,
        mapping.interval.value,
    )

    record_audit(
        db,
        admin_id=admin.id,
        action="link_subscription",
        target_user_id=user_id,
        details={
            "lemonsqueezy_subscription_id": ls_id,
            "user_email": target.email,
            "subscription_email": customer_email,
            "email_override_used": bool(override and email_mismatch),
            "tier": mapping.tier.value,
            "billing_interval": mapping.interval.value,
            "status": sub.status,
        },
    )
    return {
        "success": True,
        "message": "Subscription linked successfully",
        "subscription": {
            "tier": mapping.tier.value,
            "billing_interval": mapping.interval.value,
            "status": sub.status,
            "customer_email": customer_email,
        },
    }


def _mirror_locally(db: Session, sub: Subscription, changes: dict[str, Any], *, action: str) -> bool:
    """Second step of cancel, resume and plan change. Returns False (degraded) if the local write failed."""
    try:
        for key, value in changes.items():
            setattr(sub, key, value)
        db.commit()
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(
            "subscription.%s.mirror_failed subscription_id=%s error=%s",
            action,
            sub.lemonsqueezy_subscription_id,
            e,
        )
        return False


def _cancel(db: Session, sub: Subscription, client: LemonSqueezyClient, now: datetime) -> dict[str, Any]:
    if sub.status == SubscriptionStatus.CANCELLED.value:
        raise bad_request("Subscription is already cancelled")
    if sub.status == SubscriptionStatus.EXPIRED.value:
        raise bad_request("Subscription has already expired")

    ls_id = sub.lemonsqueezy_subscription_id
    try:
        remote = client.set_cancelled(ls_id, True)
    except LemonSqueezyError as e:
        raise _upstream_error(e, "Failed to cancel subscription")
    data = remote.get("data") or {}
    attrs = data.get("attributes") or {}
    ends_at = parse_iso8601(attrs.get("ends_at")) or now

    mirrored = _mirror_locally(
        db,
        sub,
        {
            "status": SubscriptionStatus.CANCELLED.value,
            "status_formatted": "Cancelled",
            "cancelled_at": ends_at,
        },
        action="cancel",
    )
    return {
        "success": True,
        "message": "Subscription cancelled successfully",
        "degraded": not mirrored,
        "subscription": {
            "id": data.get("id") or ls_id,
            "status": attrs.get("status") or SubscriptionStatus.CANCELLED.value,
            "ends_at": isoformat_or_none(ends_at),
        },
    }


def _resume(db: Session, sub: Subscription, client: LemonSqueezyClient, now: datetime) -> dict[str, Any]:
    if sub.status != SubscriptionStatus.CANCELLED.value:
        raise bad_request("Subscription is not cancelled")
    ends_at = as_utc(sub.cancelled_at)
    if ends_at is not None and ends_at <= now:
        raise bad_request("Subscription period has ended. Please start a new subscription.")

    ls_id = sub.lemonsqueezy_subscription_id
    try:
        remote = client.set_cancelled(ls_id, False)
    except LemonSqueezyError as e:
        raise _upstream_error(e, "Failed to resume subscription")
    data = remote.get("data") or {}
    attrs = data.get("attributes") or {}
    status = normalize_status(attrs.get("status") or SubscriptionStatus.ACTIVE.value)

    mirrored = _mirror_locally(
        db,
        sub,
        {
            "status": status,
            "status_formatted": attrs.get("status_formatted") or "Active",
            "cancelled_at": None,
        },
        action="resume",
    )
    return {
        "success": True,
        "message": "Subscription resumed successfully",
        "degraded": not mirrored,
        "subscription": {
            "id": data.get("id") or ls_id,
            "status": status,
            "current_period_end": attrs.get("renews_at"),
        },
    }


def _owned_subscription(db: Session, user: CurrentUser, subscription_id: str) -> Subscription:
    ls_id = str(subscription_id or "").strip()
    if not ls_id:
        raise bad_request("Missing subscription_id")
    sub = db.query(Subscription).filter(Subscription.lemonsqueezy_subscription_id == ls_id).first()
    if sub is None:
        raise not_found("Subscription not found")
    if sub.user_id != user.id:
        raise OperationError(403, "Unauthorized")
    return sub


def cancel_own_subscription(
    db: Session, user: CurrentUser, subscription_id: str, client: LemonSqueezyClient, now: datetime | None = None
) -> dict[str, Any]:
    sub = _owned_subscription(db, user, subscription_id)
    return _cancel(db, sub, client, now or utcnow())


def resume_own_subscription(
    db: Session, user: CurrentUser, subscription_id: str, client: LemonSqueezyClient, now: datetime | None = None
) -> dict[str, Any]:
    sub = _owned_subscription(db, user, subscription_id)
    return _resume(db, sub, client, now or utcnow())


def change_own_subscription_plan(
    db: Session,
    user: CurrentUser,
    subscription_id: str,
    tier: Tier | str,
    interval: BillingInterval | str,
    *,
    client: LemonSqueezyClient,
    variant_table: VariantTable,
    pricing_cache: PricingCache,
) -> dict[str, Any]:
    """Move the caller's subscription to the variant for ``(tier, interval)``.

    PayPal-billed subscriptions cannot be changed through the API; the caller
    gets the customer-portal URL instead.
    """
    sub = _owned_subscription(db, user, subscription_id)
    variant_id = variant_table.get_variant_id(tier, interval)
    if not variant_id:
        raise bad_request("Invalid tier or billing interval")
    mapping = variant_table.map_variant_to_tier_and_interval(variant_id)

    ls_id = sub.lemonsqueezy_subscription_id
    try:
        remote = client.update_variant(ls_id, variant_id)
    except LemonSqueezyError as e:
        if "paypal" in str(e.detail or "").lower():
            logger.info("subscription.change_plan.requires_portal subscription_id=%s", ls_id)
            return {
                "success": False,
                "requires_portal": True,
                "portal_url": _portal_update_url(sub, client),
                "message": PAYPAL_PORTAL_MESSAGE,
            }
        raise _upstream_error(e, "Failed to update subscription")
    data = remote.get("data") or {}
    attrs = data.get("attributes") or {}

    try:
        amount_cents = pricing_cache.get_price_cents(db, mapping.tier, mapping.interval)
    except PricingNotFoundError:
        amount_cents = int(sub.amount_cents or 0)

    mirrored = _mirror_locally(
        db,
        sub,
        {
            "tier": mapping.tier.value,
            "billing_interval": mapping.interval.value,
            "lemonsqueezy_variant_id": variant_id,
            "amount_cents": amount_cents,
        },
        action="change_plan",
    )
    logger.info(
        "subscription.change_plan.done user_id=%s subscription_id=%s tier=%s interval=%s",
        user.id,
        ls_id,
        mapping.tier.value,
        mapping.interval.value,
    )
    return {
        "success": True,
        "message": "Subscription updated successfully",
        "degraded": not mirrored,
        "subscription": {
            "id": data.get("id") or ls_id,
            "status": attrs.get("status") or sub.status,
            "variant_id": variant_id,
            "product_name": attrs.get("product_name"),
            "variant_name": attrs.get("variant_name"),
            "tier": mapping.tier.value,
            "billing_interval": mapping.interval.value,
            "amount_cents": amount_cents,
        },
    }


def _portal_update_url(sub: Subscription, client: LemonSqueezyClient) -> str | None:
    try:
        remote = client.get_subscription(sub.lemonsqueezy_subscription_id)
    except LemonSqueezyError as e:
        logger.warning("subscription.change_plan.portal_lookup_failed subscription_id=%s error=%s", sub.lemonsqueezy_subscription_id, e)
        return sub.customer_portal_update_subscription_url
    urls = (((remote.get("data") or {}).get("attributes") or {}).get("urls")) or {}
    return urls.get("customer_portal_update_subscription") or sub.customer_portal_update_subscription_url


def _linked_current_subscription(db: Session, user_id: str, verb: str) -> Subscription:
    sub = get_current_subscription(db, user_id)
    if sub is None:
        raise not_found("No subscription found for this user")
    if sub.is_gifted:
        raise bad_request(f"Cannot {verb} a gifted subscription. Use the remove gift endpoint instead.")
    if not sub.lemonsqueezy_subscription_id:
        raise bad_request("No LemonSqueezy subscription linked to this account")
    return sub


def admin_cancel_subscription(
    db: Session, admin: CurrentUser, user_id: str, client: LemonSqueezyClient, now: datetime | None = None
) -> dict[str, Any]:
    sub = _linked_current_subscription(db, user_id, "cancel")
    sub_id, ls_id = sub.id, sub.lemonsqueezy_subscription_id
    result = _cancel(db, sub, client, now or utcnow())
    record_audit(
        db,
        admin_id=admin.id,
        action="cancel_subscription",
        target_user_id=user_id,
        details={
            "subscription_id": sub_id,
            "lemonsqueezy_subscription_id": ls_id,
            "ends_at": result["subscription"]["ends_at"],
            "degraded": result["degraded"],
        },
    )
    return result


def admin_resume_subscription(
    db: Session, admin: CurrentUser, user_id: str, client: LemonSqueezyClient, now: datetime | None = None
) -> dict[str, Any]:
    sub = _linked_current_subscription(db, user_id, "resume")
    sub_id, ls_id = sub.id, sub.lemonsqueezy_subscription_id
    result = _resume(db, sub, client, now or utcnow())
    record_audit(
        db,
        admin_id=admin.id,
        action="resume_subscription",
        target_user_id=user_id,
        details={
            "subscription_id": sub_id,
            "lemonsqueezy_subscription_id": ls_id,
            "status": result["subscription"]["status"],
            "degraded": result["degraded"],
        },
    )
    return result


def refetch_subscription(
    db: Session,
    admin: CurrentUser,
    user_id: str,
    *,
    client: LemonSqueezyClient,
    variant_table: VariantTable,
    pricing_cache: PricingCache,
) -> dict[str, Any]:
    sub = get_current_subscription(db, user_id)
    if sub is None:
        raise not_found("No subscription found for this user")
    if sub.is_gifted:
        raise bad_request("Cannot refetch gifted subscriptions from LemonSqueezy")
    ls_id = sub.lemonsqueezy_subscription_id
    if not ls_id:
        raise bad_request("No LemonSqueezy subscription ID linked to this user")

    try:
        remote = client.get_subscription(ls_id)
    except LemonSqueezyError as e:
        if e.status_code == 404:
            raise not_found("LemonSqueezy subscription not found")
        raise OperationError(502, "Failed to fetch subscription from LemonSqueezy")
    attrs = ((remote.get("data") or {}).get("attributes") or {})
    if not attrs:
        raise OperationError(502, "Invalid response from LemonSqueezy API")

    mapping = variant_table.map_variant_to_tier_and_interval(attrs.get("variant_id"))
    if mapping is None:
        raise bad_request(f"Unknown variant: {attrs.get('variant_id')}. Configure its LEMONSQUEEZY_*_VARIANT_ID first.")
    amount_cents = resolve_amount_cents(db, attrs, mapping, pricing_cache)
    if amount_cents is None:
        amount_cents = int(sub.amount_cents or 0)

    previous = {"status": sub.status, "tier": sub.tier, "billing_interval": sub.billing_interval}
    apply_remote_attributes(sub, subscription_id=ls_id, attrs=attrs, mapping=mapping, amount_cents=amount_cents)
    commit_or_conflict(db)
    logger.info("admin.refetch.done admin_id=%s user_id=%s subscription_id=%s status=%s", admin.id, user_id, ls_id, sub.status)

    record_audit(
        db,
        admin_id=admin.id,
        action="refetch_subscription",
        target_user_id=user_id,
        details={
            "lemonsqueezy_subscription_id": ls_id,
            "previous_status": previous["status"],
            "new_status": sub.status,
            "previous_tier": previous["tier"],
            "new_tier": sub.tier,
            "previous_billing_interval": previous["billing_interval"],
            "new_billing_interval": sub.billing_interval,
        },
    )
    return {"success": True, "message": "Subscription refetched successfully", "subscription": serialize_subscription(sub)}


def _page_bounds(page: int, limit: int, default_limit: int) -> tuple[int, int, int]:
    page = max(1, int(page or 1))
    limit = max(1, min(int(limit or default_limit), MAX_PAGE_SIZE))
    return page, limit, (page - 1) * limit


def list_subscriptions(db: Session, page: int = 1, limit: int = 50, now: datetime | None = None) -> dict[str, Any]:
    page, limit, offset = _page_bounds(page, limit, 50)
    now = now or utcnow()
    total = int(db.query(func.count(UserProfile.id)).scalar() or 0)
    profiles = (
        db.query(UserProfile)
        .order_by(UserProfile.created_at.desc(), UserProfile.id.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    users: list[dict[str, Any]] = []
    for p in profiles:
        sub = get_current_subscription(db, p.id)
        users.append(
            {
                "id": p.id,
                "email": p.email or "",
                "full_name": p.full_name,
                "role": p.role or "user",
                "subscription": serialize_subscription(sub),
                "is_supporter": is_entitled(sub, now),
            }
        )
    return {
        "users": users,
        "pagination": {"page": page, "limit": limit, "total": total, "has_more": offset + limit < total},
    }


def _user_summary(profile: UserProfile | None) -> dict[str, Any] | None:
    if profile is None:
        return None
    return {"id": profile.id, "email": profile.email, "full_name": profile.full_name}


def list_audit_log(db: Session, page: int = 1, limit: int = 20) -> dict[str, Any]:
    page, limit, offset = _page_bounds(page, limit, 20)
    total = int(db.query(func.count(AdminAuditLog.id)).scalar() or 0)
    rows = (
        db.query(AdminAuditLog)
        .order_by(AdminAuditLog.created_at.desc(), AdminAuditLog.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    ids = {r.admin_id for r in rows} | {r.target_user_id for r in rows if r.target_user_id}
    profiles = {p.id: p for p in db.query(UserProfile).filter(UserProfile.id.in_(ids)).all()} if ids else {}

    logs = [
        {
            "id": r.id,
            "action": r.action,
            "action_label": format_action_label(r.action),
            "details": r.details,
            "created_at": isoformat_or_none(r.created_at),
            "admin": _user_summary(profiles.get(r.admin_id)),
            "target_user": _user_summary(profiles.get(r.target_user_id)) if r.target_user_id else None,
        }
        for r in rows
    ]
    return {
        "logs": logs,
        "pagination": {"page": page, "limit": limit, "total": total, "has_more": offset + limit < total},
    }
