from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from scoreboard.api.deps import get_lemonsqueezy_client, get_pricing_cache, get_variant_table
from scoreboard.core.database import get_db
from scoreboard.core.errors import not_found
from scoreboard.core.security import CurrentUser, require_admin
from scoreboard.models.profile import UserProfile
from scoreboard.models.tier_pricing import TierPricing
from scoreboard.schemas.subscription import GiftRequest, LinkRequest, TierPriceResponse, VerifyLinkRequest
from scoreboard.services import admin_subscriptions as ops
from scoreboard.services.entitlements import get_current_subscription, is_entitled
from scoreboard.services.lemonsqueezy import LemonSqueezyClient
from scoreboard.services.pricing import PricingCache, sync_prices_from_lemonsqueezy
from scoreboard.services.subscription_sync import serialize_subscription
from scoreboard.services.variant_mapping import VariantTable


router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/admin/subscriptions")
async def admin_list_subscriptions(page: int = 1, limit: int = 50, db: Session = Depends(get_db)) -> dict:
    return ops.list_subscriptions(db, page=page, limit=limit)


@router.get("/admin/subscriptions/audit-log")
async def admin_audit_log(page: int = 1, limit: int = 20, db: Session = Depends(get_db)) -> dict:
    return ops.list_audit_log(db, page=page, limit=limit)


@router.post("/admin/subscriptions/verify-link")
async def admin_verify_link(
    body: VerifyLinkRequest,
    db: Session = Depends(get_db),
    client: LemonSqueezyClient = Depends(get_lemonsqueezy_client),
    variant_table: VariantTable = Depends(get_variant_table),
    pricing_cache: PricingCache = Depends(get_pricing_cache),
) -> dict:
    return ops.verify_link(
        db,
        body.lemonsqueezy_subscription_id,
        client=client,
        variant_table=variant_table,
        pricing_cache=pricing_cache,
    )


@router.get("/admin/subscriptions/{user_id}")
async def admin_get_subscription(user_id: str, db: Session = Depends(get_db)) -> dict:
    profile = db.query(UserProfile).filter(UserProfile.id == user_id).first()
    if profile is None:
        raise not_found("User not found")
    sub = get_current_subscription(db, user_id)
    return {
        "user": {"id": profile.id, "email": profile.email, "role": profile.role},
        "subscription": serialize_subscription(sub),
        "is_supporter": is_entitled(sub),
    }


@router.post("/admin/subscriptions/{user_id}/gift")
async def admin_gift_subscription(
    user_id: str,
    body: Optional[GiftRequest] = Body(default=None),
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> dict:
    return ops.gift_subscription(db, admin, user_id, expires_at=(body.expires_at if body else None))


@router.delete("/admin/subscriptions/{user_id}/gift")
async def admin_remove_gift(
    user_id: str,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> dict:
    return ops.remove_gift(db, admin, user_id)


@router.post("/admin/subscriptions/{user_id}/link")
async def admin_link_subscription(
    user_id: str,
    body: LinkRequest,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    client: LemonSqueezyClient = Depends(get_lemonsqueezy_client),
    variant_table: VariantTable = Depends(get_variant_table),
    pricing_cache: PricingCache = Depends(get_pricing_cache),
) -> dict:
    return ops.link_subscription(
        db,
        admin,
        user_id,
        body.lemonsqueezy_subscription_id,
        override=body.override,
        client=client,
        variant_table=variant_table,
        pricing_cache=pricing_cache,
    )


@router.post("/admin/subscriptions/{user_id}/cancel")
async def admin_cancel_subscription(
    user_id: str,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    client: LemonSqueezyClient = Depends(get_lemonsqueezy_client),
) -> dict:
    return ops.admin_cancel_subscription(db, admin, user_id, client)


@router.post("/admin/subscriptions/{user_id}/resume")
async def admin_resume_subscription(
    user_id: str,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    client: LemonSqueezyClient = Depends(get_lemonsqueezy_client),
) -> dict:
    return ops.admin_resume_subscription(db, admin, user_id, client)


@router.post("/admin/subscriptions/{user_id}/refetch")
async def admin_refetch_subscription(
    user_id: str,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    client: LemonSqueezyClient = Depends(get_lemonsqueezy_client),
    variant_table: VariantTable = Depends(get_variant_table),
    pricing_cache: PricingCache = Depends(get_pricing_cache),
) -> dict:
    return ops.refetch_subscription(
        db,
        admin,
        user_id,
        client=client,
        variant_table=variant_table,
        pricing_cache=pricing_cache,
    )


@router.get("/admin/pricing")
async def admin_list_pricing(db: Session = Depends(get_db)) -> dict:
    rows = db.query(TierPricing).order_by(TierPricing.tier.asc(), TierPricing.billing_interval.asc()).all()
    return {"pricing": [TierPriceResponse.model_validate(r).model_dump(mode="json") for r in rows]}


@router.post("/admin/pricing/sync")
async def admin_sync_pricing(
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    client: LemonSqueezyClient = Depends(get_lemonsqueezy_client),
    variant_table: VariantTable = Depends(get_variant_table),
    pricing_cache: PricingCache = Depends(get_pricing_cache),
) -> dict:
    result = sync_prices_from_lemonsqueezy(db, client, variant_table, pricing_cache)
    ops.record_audit(
        db,
        admin_id=admin.id,
        action="sync_pricing",
        target_user_id=None,
        details={"synced": result["synced"], "changes": result["changes"], "errors": len(result.get("errors") or [])},
    )
    return {"success": True, **result}
