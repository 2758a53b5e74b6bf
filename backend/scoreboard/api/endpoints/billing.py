from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from scoreboard.api.deps import get_lemonsqueezy_client, get_pricing_cache, get_variant_table
from scoreboard.core.database import get_db
from scoreboard.core.errors import OperationError, bad_request
from scoreboard.core.security import CurrentUser, get_current_user
from scoreboard.core.settings import settings
from scoreboard.schemas.subscription import CheckoutRequest, SubscriptionActionRequest, UpdateSubscriptionRequest
from scoreboard.services import admin_subscriptions as ops
from scoreboard.services.entitlements import get_current_subscription, has_active_subscription
from scoreboard.services.lemonsqueezy import LemonSqueezyClient, LemonSqueezyError, verify_webhook_signature
from scoreboard.services.pricing import PricingCache
from scoreboard.services.subscription_sync import handle_webhook_event, serialize_subscription
from scoreboard.services.variant_mapping import VariantTable


router = APIRouter()


@router.get("/subscription")
async def get_my_subscription(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> dict:
    sub = get_current_subscription(db, current_user.id)
    entitled = has_active_subscription(db, current_user.id)
    if entitled.error:
        raise OperationError(500, entitled.error)
    return {
        "subscription": serialize_subscription(sub),
        "tier": sub.tier if sub else None,
        "is_active": entitled.data,
    }


@router.post("/lemonsqueezy/checkout")
async def create_checkout(
    body: CheckoutRequest,
    current_user: CurrentUser = Depends(get_current_user),
    client: LemonSqueezyClient = Depends(get_lemonsqueezy_client),
    variant_table: VariantTable = Depends(get_variant_table),
) -> dict:
    variant_id = variant_table.get_variant_id(body.tier, body.billing_interval)
    if not variant_id:
        raise bad_request(f"No variant configured for {body.tier.value}/{body.billing_interval.value}")
    try:
        url = client.create_checkout(
            variant_id=variant_id,
            user_id=current_user.id,
            redirect_url=f"{settings.frontend_url}/subscription?checkout=success",
            email=(current_user.email or None),
            custom={"tier": body.tier.value, "billing_interval": body.billing_interval.value},
        )
    except LemonSqueezyError as e:
        raise OperationError(502, e.detail or "Failed to create checkout")
    return {"url": url}


@router.post("/lemonsqueezy/cancel-subscription")
async def cancel_subscription(
    body: SubscriptionActionRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    client: LemonSqueezyClient = Depends(get_lemonsqueezy_client),
) -> dict:
    return ops.cancel_own_subscription(db, current_user, body.subscription_id, client)


@router.post("/lemonsqueezy/resume-subscription")
async def resume_subscription(
    body: SubscriptionActionRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    client: LemonSqueezyClient = Depends(get_lemonsqueezy_client),
) -> dict:
    return ops.resume_own_subscription(db, current_user, body.subscription_id, client)


@router.post("/lemonsqueezy/update-subscription")
async def update_subscription(
    body: UpdateSubscriptionRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    client: LemonSqueezyClient = Depends(get_lemonsqueezy_client),
    variant_table: VariantTable = Depends(get_variant_table),
    pricing_cache: PricingCache = Depends(get_pricing_cache),
) -> dict:
    return ops.change_own_subscription_plan(
        db,
        current_user,
        body.subscription_id,
        body.tier,
        body.billing_interval,
        client=client,
        variant_table=variant_table,
        pricing_cache=pricing_cache,
    )


@router.post("/webhooks/lemonsqueezy")
async def lemonsqueezy_webhook(
    request: Request,
    db: Session = Depends(get_db),
    variant_table: VariantTable = Depends(get_variant_table),
    pricing_cache: PricingCache = Depends(get_pricing_cache),
) -> dict:
    if not settings.lemonsqueezy_webhook_secret:
        raise HTTPException(status_code=500, detail="LEMONSQUEEZY_WEBHOOK_SECRET is not configured")
    raw_body = await request.body()
    if not verify_webhook_signature(raw_body, request.headers.get("x-signature"), settings.lemonsqueezy_webhook_secret):
        raise HTTPException(status_code=400, detail="Invalid signature")
    try:
        payload = (await request.json()) or {}
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON")

    meta = payload.get("meta") or {}
    event_name = (request.headers.get("x-event-name") or "") or str(meta.get("event_name") or "")
    return handle_webhook_event(
        db,
        payload,
        event_name=event_name.strip(),
        variant_table=variant_table,
        pricing_cache=pricing_cache,
    )
