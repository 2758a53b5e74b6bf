from __future__ import annotations

from dataclasses import dataclass

from scoreboard.core.settings import Settings
from scoreboard.models.enums import BillingInterval, Tier


@dataclass(frozen=True)
class VariantConfig:
    env_var: str
    tier: Tier
    interval: BillingInterval
    variant_id: str | None


@dataclass(frozen=True)
class TierInterval:
    tier: Tier
    interval: BillingInterval


# (settings attribute, environment variable, tier, interval)
_VARIANT_FIELDS: tuple[tuple[str, str, Tier, BillingInterval], ...] = (
    ("lemonsqueezy_monthly_supporter_variant_id", "LEMONSQUEEZY_MONTHLY_SUPPORTER_VARIANT_ID", Tier.SUPPORTER, BillingInterval.MONTHLY),
    ("lemonsqueezy_monthly_champion_variant_id", "LEMONSQUEEZY_MONTHLY_CHAMPION_VARIANT_ID", Tier.CHAMPION, BillingInterval.MONTHLY),
    ("lemonsqueezy_monthly_legend_variant_id", "LEMONSQUEEZY_MONTHLY_LEGEND_VARIANT_ID", Tier.LEGEND, BillingInterval.MONTHLY),
    ("lemonsqueezy_monthly_hall_of_famer_variant_id", "LEMONSQUEEZY_MONTHLY_HALL_OF_FAMER_VARIANT_ID", Tier.HALL_OF_FAMER, BillingInterval.MONTHLY),
    ("lemonsqueezy_yearly_supporter_variant_id", "LEMONSQUEEZY_YEARLY_SUPPORTER_VARIANT_ID", Tier.SUPPORTER, BillingInterval.YEARLY),
    ("lemonsqueezy_yearly_champion_variant_id", "LEMONSQUEEZY_YEARLY_CHAMPION_VARIANT_ID", Tier.CHAMPION, BillingInterval.YEARLY),
    ("lemonsqueezy_yearly_legend_variant_id", "LEMONSQUEEZY_YEARLY_LEGEND_VARIANT_ID", Tier.LEGEND, BillingInterval.YEARLY),
    ("lemonsqueezy_yearly_hall_of_famer_variant_id", "LEMONSQUEEZY_YEARLY_HALL_OF_FAMER_VARIANT_ID", Tier.HALL_OF_FAMER, BillingInterval.YEARLY),
)


class VariantTable:
    """Fixed mapping between Lemon Squeezy variant ids and (tier, interval) pairs.

    Built once at startup from ``Settings`` and passed to whatever needs it.
    A pair whose variable is unset simply has no variant id; that is a valid
    state and lookups for it return ``None``.
    """

    def __init__(self, configs: list[VariantConfig]) -> None:
        self._configs = list(configs)

    @classmethod
    def from_settings(cls, settings: Settings) -> "VariantTable":
        configs = []
        for attr, env_var, tier, interval in _VARIANT_FIELDS:
            raw = getattr(settings, attr, None)
            variant_id = str(raw).strip() if raw else None
            configs.append(VariantConfig(env_var=env_var, tier=tier, interval=interval, variant_id=variant_id or None))
        return cls(configs)

    def map_variant_to_tier_and_interval(self, variant_id: object) -> TierInterval | None:
        vid = str(variant_id or "").strip()
        if not vid:
            return None
        for cfg in self._configs:
            if cfg.variant_id and cfg.variant_id == vid:
                return TierInterval(tier=cfg.tier, interval=cfg.interval)
        return None

    def get_variant_id(self, tier: Tier | str, interval: BillingInterval | str) -> str | None:
        try:
            t = Tier(tier)
            i = BillingInterval(interval)
        except ValueError:
            return None
        for cfg in self._configs:
            if cfg.tier == t and cfg.interval == i:
                return cfg.variant_id
        return None

    def all_variant_configs(self) -> list[VariantConfig]:
        return list(self._configs)
