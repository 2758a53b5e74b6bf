import enum


class Tier(str, enum.Enum):
    SUPPORTER = "supporter"
    CHAMPION = "champion"
    LEGEND = "legend"
    HALL_OF_FAMER = "hall_of_famer"
    # Admin-gifted tier, never sold.
    APPRECIATION = "appreciation"


PAID_TIERS = (Tier.SUPPORTER, Tier.CHAMPION, Tier.LEGEND, Tier.HALL_OF_FAMER)


class BillingInterval(str, enum.Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    PAUSED = "paused"
    UNPAID = "unpaid"
    ON_TRIAL = "on_trial"


class Visibility(str, enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class SlideType(str, enum.Enum):
    IMAGE = "image"
    SCOREBOARD = "scoreboard"
