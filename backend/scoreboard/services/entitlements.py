from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scoreboard.core.results import ServiceResult
from scoreboard.core.settings import settings
from scoreboard.core.timeutils import as_utc, utcnow
from scoreboard.models.enums import SubscriptionStatus
from scoreboard.models.profile import UserProfile
from scoreboard.models.subscription import Subscription

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = {SubscriptionStatus.ACTIVE.value, SubscriptionStatus.TRIALING.value}

FEATURE_KIOSK_MODE = "kiosk_mode"
FEATURES = {FEATURE_KIOSK_MODE}


def get_current_subscription(db: Session, user_id: str) -> Subscription | None:
    """The authoritative row for a user: the most recently created one."""
    return (
        db.query(Subscription)
        .filter(Subscription.user_id == user_id)
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
        .first()
    )


def is_entitled(sub: Subscription | None, now: datetime | None = None) -> bool:
    """Single entitlement decision used by feature gates, limits and admin listings.

    A gifted row with an expiry lapses at ``gifted_expires_at`` whatever its status.
    """
    if sub is None:
        return False
    now = now or utcnow()
    if sub.is_gifted and sub.gifted_expires_at is not None and as_utc(sub.gifted_expires_at) <= now:
        return False
    status = str(sub.status or "").strip().lower()
    if status in ACTIVE_STATUSES:
        return True
    # cancelled_at carries ends_at for cancelled rows; entitlement lasts until then.
    if status == SubscriptionStatus.CANCELLED.value:
        ends_at = as_utc(sub.cancelled_at)
        return ends_at is not None and ends_at > now
    return False


def has_active_subscription(db: Session, user_id: str, now: datetime | None = None) -> ServiceResult[bool]:
    try:
        sub = get_current_subscription(db, user_id)
    except SQLAlchemyError as e:
        logger.warning("entitlements.lookup.error user_id=%s error=%s", user_id, e)
        return ServiceResult(False, "Failed to fetch subscription. Please try again.")
    return ServiceResult(is_entitled(sub, now))


def get_subscription_tier(db: Session, user_id: str) -> ServiceResult[str | None]:
    try:
        sub = get_current_subscription(db, user_id)
    except SQLAlchemyError as e:
        logger.warning("entitlements.tier.error user_id=%s error=%s", user_id, e)
        return ServiceResult(None, "Failed to fetch subscription. Please try again.")
    return ServiceResult(sub.tier if sub else None)


def get_supporter_status(db: Session, user_id: str, now: datetime | None = None) -> bool:
    """Server-side feature gate. Admins count as supporters without a subscription."""
    profile = db.query(UserProfile).filter(UserProfile.id == user_id).first()
    if profile is not None and str(profile.role or "").strip().lower() == settings.admin_role:
        return True
    return is_entitled(get_current_subscription(db, user_id), now)


def can_access_feature(db: Session, user_id: str, feature: str, now: datetime | None = None) -> ServiceResult[bool]:
    if feature not in FEATURES:
        return ServiceResult(False, f"Unknown feature: {feature}")
    return has_active_subscription(db, user_id, now)
