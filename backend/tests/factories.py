from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from scoreboard.core.database import Base
from scoreboard.models.audit_log import AdminAuditLog  # noqa: F401
from scoreboard.models.kiosk import KioskConfig, KioskSlide
from scoreboard.models.payment_history import PaymentHistory  # noqa: F401
from scoreboard.models.profile import UserProfile
from scoreboard.models.scoreboard import Scoreboard, ScoreboardEntry
from scoreboard.models.subscription import Subscription
from scoreboard.models.tier_pricing import TierPricing
from scoreboard.services.lemonsqueezy import LemonSqueezyError
from scoreboard.services.variant_mapping import VariantTable

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_variant_table(**overrides) -> VariantTable:
    values = {
        "lemonsqueezy_monthly_supporter_variant_id": "v100",
        "lemonsqueezy_yearly_supporter_variant_id": "v101",
        "lemonsqueezy_monthly_champion_variant_id": "v200",
        "lemonsqueezy_yearly_champion_variant_id": "v789",
    }
    values.update(overrides)
    return VariantTable.from_settings(SimpleNamespace(**values))


def add_profile(db, user_id: str, email: str | None = None, role: str = "user") -> UserProfile:
    p = UserProfile(id=user_id, email=email or f"{user_id}@example.com", role=role)
    db.add(p)
    db.commit()
    return p


def add_subscription(db, user_id: str, status: str = "active", tier: str = "supporter", **kwargs) -> Subscription:
    fields = {
        "billing_interval": "monthly",
        "amount_cents": 500,
        "currency": "USD",
        "is_gifted": False,
        "created_at": NOW - timedelta(days=30),
    }
    fields.update(kwargs)
    sub = Subscription(user_id=user_id, status=status, tier=tier, **fields)
    db.add(sub)
    db.commit()
    return sub


def add_price(db, tier: str, interval: str, amount_cents: int, variant_id: str = "") -> TierPricing:
    row = TierPricing(
        tier=tier,
        billing_interval=interval,
        amount_cents=amount_cents,
        currency="USD",
        lemonsqueezy_variant_id=variant_id,
        last_synced_at=NOW,
    )
    db.add(row)
    db.commit()
    return row


def add_scoreboard(db, owner_id: str, visibility: str = "public", is_locked: bool = False, entries: int = 0) -> Scoreboard:
    board = Scoreboard(owner_id=owner_id, title="Board", visibility=visibility, is_locked=is_locked)
    db.add(board)
    db.commit()
    for i in range(entries):
        db.add(ScoreboardEntry(scoreboard_id=board.id, name=f"Player {i}", score=i))
    db.commit()
    return board


def add_kiosk(db, owner_id: str, slide_ids: list[str]) -> KioskConfig:
    board = add_scoreboard(db, owner_id)
    cfg = KioskConfig(scoreboard_id=board.id)
    db.add(cfg)
    db.commit()
    for position, slide_id in enumerate(slide_ids):
        db.add(KioskSlide(id=slide_id, kiosk_config_id=cfg.id, position=position, slide_type="image"))
    db.commit()
    return cfg


def ls_subscription(
    subscription_id: str = "sub_1",
    *,
    email: str = "user-1@example.com",
    variant_id: object = "v789",
    status: str = "active",
    price: int | None = 9900,
    cancelled: bool = False,
    ends_at: str | None = None,
) -> dict:
    attrs = {
        "user_email": email,
        "customer_id": 11,
        "order_id": 22,
        "product_id": 33,
        "variant_id": variant_id,
        "status": status,
        "status_formatted": status.replace("_", " ").title(),
        "card_brand": "visa",
        "card_last_four": "4242",
        "created_at": "2026-05-01T00:00:00Z",
        "renews_at": "2027-05-01T00:00:00Z",
        "ends_at": ends_at,
        "cancelled": cancelled,
        "test_mode": True,
        "urls": {
            "customer_portal": "https://portal.example.com/c",
            "customer_portal_update_subscription": "https://portal.example.com/c/update",
        },
    }
    if price is not None:
        attrs["first_subscription_item"] = {"price": price, "currency": "USD"}
    return {"data": {"type": "subscriptions", "id": subscription_id, "attributes": attrs}}


class FakeLemonSqueezyClient:
    def __init__(self, subscriptions: dict | None = None, variants: dict | None = None) -> None:
        self.subscriptions = dict(subscriptions or {})
        self.variants = dict(variants or {})
        self.calls: list[tuple] = []
        self.fail_with: LemonSqueezyError | None = None
        self.update_fail_with: LemonSqueezyError | None = None

    def get_subscription(self, subscription_id: str) -> dict:
        self.calls.append(("get_subscription", subscription_id))
        if self.fail_with:
            raise self.fail_with
        if subscription_id not in self.subscriptions:
            raise LemonSqueezyError(404, "Not Found")
        return self.subscriptions[subscription_id]

    def set_cancelled(self, subscription_id: str, cancelled: bool) -> dict:
        self.calls.append(("set_cancelled", subscription_id, cancelled))
        if self.fail_with:
            raise self.fail_with
        attrs = {"status": "cancelled" if cancelled else "active", "renews_at": "2026-07-01T00:00:00Z"}
        if cancelled:
            attrs["ends_at"] = "2026-07-01T00:00:00Z"
        return {"data": {"type": "subscriptions", "id": subscription_id, "attributes": attrs}}

    def update_variant(self, subscription_id: str, variant_id: str) -> dict:
        self.calls.append(("update_variant", subscription_id, variant_id))
        if self.update_fail_with:
            raise self.update_fail_with
        attrs = {"status": "active", "variant_id": variant_id, "product_name": "Scoreboard", "variant_name": f"Plan {variant_id}"}
        return {"data": {"type": "subscriptions", "id": subscription_id, "attributes": attrs}}

    def get_variant(self, variant_id: str) -> dict:
        self.calls.append(("get_variant", variant_id))
        if variant_id not in self.variants:
            raise LemonSqueezyError(404, "Not Found")
        return {"data": {"type": "variants", "id": variant_id, "attributes": {"price": self.variants[variant_id]}}}

    def create_checkout(self, **kwargs) -> str:
        self.calls.append(("create_checkout", kwargs))
        return f"https://checkout.example.com/{kwargs['variant_id']}"


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
