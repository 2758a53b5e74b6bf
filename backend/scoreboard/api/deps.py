from fastapi import HTTPException, Request

from scoreboard.core.settings import settings
from scoreboard.services.lemonsqueezy import LemonSqueezyClient
from scoreboard.services.pricing import PricingCache
from scoreboard.services.variant_mapping import VariantTable


def get_pricing_cache(request: Request) -> PricingCache:
    return request.app.state.pricing_cache


def get_variant_table(request: Request) -> VariantTable:
    return request.app.state.variant_table


def get_lemonsqueezy_client() -> LemonSqueezyClient:
    if not settings.lemonsqueezy_api_key:
        raise HTTPException(status_code=500, detail="Lemon Squeezy is not configured")
    return LemonSqueezyClient(
        api_key=settings.lemonsqueezy_api_key,
        store_id=settings.lemonsqueezy_store_id,
        api_url=settings.lemonsqueezy_api_url,
    )
