from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from scoreboard.api.deps import get_pricing_cache
from scoreboard.core.database import get_db
from scoreboard.core.settings import settings
from scoreboard.core.timeutils import isoformat_or_none
from scoreboard.services.pricing import PricingCache


router = APIRouter()


@router.get("/public-config")
async def public_config() -> dict:
    return {
        "supabaseUrl": settings.supabase_url or "",
        "supabaseAnonKey": settings.supabase_anon_key or "",
    }


@router.get("/pricing")
async def public_pricing(
    db: Session = Depends(get_db),
    pricing_cache: PricingCache = Depends(get_pricing_cache),
) -> dict:
    prices = []
    for p in pricing_cache.get_all_prices(db):
        row = asdict(p)
        row["amount"] = p.amount_cents / 100
        row["last_synced_at"] = isoformat_or_none(p.last_synced_at)
        prices.append(row)
    return {"prices": prices}
