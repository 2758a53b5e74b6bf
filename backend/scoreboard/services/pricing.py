from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from sqlalchemy.orm import Session

from scoreboard.core.timeutils import utcnow
from scoreboard.models.enums import BillingInterval, Tier
from scoreboard.models.tier_pricing import TierPricing
from scoreboard.services.cache import TTLCache

logger = logging.getLogger(__name__)

_ALL_PRICES_KEY = "tier_pricing:all"


class PricingNotFoundError(LookupError):
    pass


@dataclass(frozen=True)
class TierPrice:
    tier: str
    billing_interval: str
    amount_cents: int
    currency: str
    lemonsqueezy_variant_id: str
    last_synced_at: datetime | None


def load_tier_prices(db: Session) -> list[TierPrice]:
    rows = db.query(TierPricing).order_by(TierPricing.tier.asc(), TierPricing.billing_interval.asc()).all()
    return [
        TierPrice(
            tier=r.tier,
            billing_interval=r.billing_interval,
            amount_cents=int(r.amount_cents or 0),
            currency=r.currency or "USD",
            lemonsqueezy_variant_id=r.lemonsqueezy_variant_id or "",
            last_synced_at=r.last_synced_at,
        )
        for r in rows
    ]


def _key_value(value: Tier | BillingInterval | str) -> str:
    return value.value if isinstance(value, (Tier, BillingInterval)) else str(value)


class PricingCache:
    """Process-local cache of the ``tier_pricing`` table.

    Concurrent misses may each run the loader; the results are identical so
    the last write wins harmlessly. Instances are not coordinated across
    processes, so each may serve prices up to ``ttl_s`` seconds stale.
    """

    def __init__(
        self,
        *,
        ttl_s: float = 300,
        clock: Callable[[], float] = time.monotonic,
        loader: Callable[[Session], list[TierPrice]] = load_tier_prices,
    ) -> None:
        self._store = TTLCache(max_items=1, ttl_s=ttl_s, clock=clock)
        self._loader = loader

    def get_all_prices(self, db: Session) -> list[TierPrice]:
        cached = self._store.get(_ALL_PRICES_KEY)
        if cached is not None:
            return cached
        prices = self._loader(db)
        self._store.set(_ALL_PRICES_KEY, prices)
        return prices

    def _find(self, db: Session, tier: Tier | str, interval: BillingInterval | str) -> TierPrice:
        t = _key_value(tier)
        i = _key_value(interval)
        for price in self.get_all_prices(db):
            if price.tier == t and price.billing_interval == i:
                return price
        raise PricingNotFoundError(f"No pricing found for {t}/{i}")

    def get_price_cents(self, db: Session, tier: Tier | str, interval: BillingInterval | str) -> int:
        return self._find(db, tier, interval).amount_cents

    def get_price(self, db: Session, tier: Tier | str, interval: BillingInterval | str) -> float:
        return self.get_price_cents(db, tier, interval) / 100

    def invalidate(self) -> None:
        self._store.clear()

    def sync_price_if_changed(
        self,
        db: Session,
        tier: Tier | str,
        interval: BillingInterval | str,
        amount_cents: int,
        variant_id: str | None,
    ) -> bool:
        """Best-effort write of a live price seen on a webhook. Returns True when a row changed.

        Failures are logged and rolled back, never raised.
        """
        if amount_cents is None or int(amount_cents) <= 0:
            return False
        t = _key_value(tier)
        i = _key_value(interval)
        try:
            try:
                current = self.get_price_cents(db, t, i)
            except PricingNotFoundError:
                current = None
            if current == int(amount_cents):
                return False
            upsert_tier_price(db, t, i, int(amount_cents), variant_id)
            db.commit()
            self.invalidate()
            logger.info("pricing.sync.updated tier=%s interval=%s from=%s to=%s", t, i, current, amount_cents)
            return True
        except Exception:
            db.rollback()
            logger.exception("pricing.sync.error tier=%s interval=%s amount_cents=%s", t, i, amount_cents)
            return False


def upsert_tier_price(
    db: Session,
    tier: str,
    interval: str,
    amount_cents: int,
    variant_id: str | None,
    now: datetime | None = None,
) -> TierPricing:
    now = now or utcnow()
    row = (
        db.query(TierPricing)
        .filter(TierPricing.tier == tier)
        .filter(TierPricing.billing_interval == interval)
        .first()
    )
    if row is None:
        row = TierPricing(tier=tier, billing_interval=interval, currency="USD")
        db.add(row)
    row.amount_cents = int(amount_cents)
    row.lemonsqueezy_variant_id = str(variant_id or row.lemonsqueezy_variant_id or "")
    row.last_synced_at = now
    db.flush()
    return row


def sync_prices_from_lemonsqueezy(db: Session, client: Any, variant_table: Any, cache: PricingCache) -> dict[str, Any]:
    """Pull every configured variant's price from Lemon Squeezy into ``tier_pricing``.

    Per-variant failures are collected and do not stop the rest of the batch.
    """
    synced = 0
    skipped = 0
    changes: list[dict[str, Any]] = []
    errors: list[dict[str, Any]] = []

    for cfg in variant_table.all_variant_configs():
        if not cfg.variant_id:
            skipped += 1
            continue
        try:
            variant = client.get_variant(cfg.variant_id)
            attrs = ((variant.get("data") or {}).get("attributes") or {})
            amount_cents = int(attrs.get("price") or 0)
        except Exception as e:
            logger.warning("pricing.admin_sync.fetch_failed variant_id=%s error=%s", cfg.variant_id, e)
            errors.append(
                {"tier": cfg.tier.value, "interval": cfg.interval.value, "variant_id": cfg.variant_id, "error": str(e)}
            )
            continue
        if amount_cents <= 0:
            skipped += 1
            continue

        existing = (
            db.query(TierPricing)
            .filter(TierPricing.tier == cfg.tier.value)
            .filter(TierPricing.billing_interval == cfg.interval.value)
            .first()
        )
        previous = int(existing.amount_cents) if existing is not None else None
        upsert_tier_price(db, cfg.tier.value, cfg.interval.value, amount_cents, cfg.variant_id)
        synced += 1
        if previous != amount_cents:
            changes.append(
                {"tier": cfg.tier.value, "interval": cfg.interval.value, "from": previous, "to": amount_cents}
            )

    db.commit()
    cache.invalidate()
    logger.info("pricing.admin_sync.done synced=%s skipped=%s changes=%s errors=%s", synced, skipped, len(changes), len(errors))

    out: dict[str, Any] = {"synced": synced, "skipped": skipped, "changes": changes}
    if errors:
        out["errors"] = errors
    return out
