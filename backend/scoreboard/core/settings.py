import os


def _getenv(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value if value else default


def _getenv_bool(name: str, default: bool = False) -> bool:
    raw = _getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "y", "on"}


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _getenv_csv_set(name: str) -> set[str]:
    raw = _getenv(name)
    if raw is None:
        return set()
    parts = [p.strip().lower() for p in raw.split(",")]
    return {p for p in parts if p}


class Settings:
    def __init__(self) -> None:
        self.environment = (_getenv("ENVIRONMENT", "development") or "development").lower()
        self.database_url = _getenv("DATABASE_URL", "sqlite:///./scoreboard.db") or "sqlite:///./scoreboard.db"
        self.db_auto_create = _getenv_bool("DB_AUTO_CREATE", default=True)
        self.log_level = (_getenv("LOG_LEVEL", "INFO") or "INFO").upper()
        self.cors_allow_origins = _getenv("CORS_ALLOW_ORIGINS")
        self.frontend_url = _getenv("FRONTEND_URL", "http://localhost:3000") or "http://localhost:3000"

        self.supabase_url = _getenv("SUPABASE_URL") or _getenv("NEXT_PUBLIC_SUPABASE_URL")
        self.supabase_anon_key = _getenv("SUPABASE_ANON_KEY") or _getenv("NEXT_PUBLIC_SUPABASE_ANON_KEY")
        self.supabase_service_role_key = _getenv("SUPABASE_SERVICE_ROLE_KEY")
        self.supabase_jwt_audience = _getenv("SUPABASE_JWT_AUD", "authenticated")
        self.supabase_jwt_issuer = _getenv("SUPABASE_JWT_ISSUER")

        self.admin_emails = _getenv_csv_set("ADMIN_EMAILS")
        self.admin_role = (_getenv("ADMIN_ROLE", "system_admin") or "system_admin").lower()

        self.lemonsqueezy_api_key = _getenv("LEMONSQUEEZY_API_KEY")
        self.lemonsqueezy_store_id = _getenv("LEMONSQUEEZY_STORE_ID")
        self.lemonsqueezy_webhook_secret = _getenv("LEMONSQUEEZY_WEBHOOK_SECRET")
        self.lemonsqueezy_api_url = (
            _getenv("LEMONSQUEEZY_API_URL", "https://api.lemonsqueezy.com/v1") or "https://api.lemonsqueezy.com/v1"
        ).rstrip("/")

        self.lemonsqueezy_monthly_supporter_variant_id = _getenv("LEMONSQUEEZY_MONTHLY_SUPPORTER_VARIANT_ID")
        self.lemonsqueezy_monthly_champion_variant_id = _getenv("LEMONSQUEEZY_MONTHLY_CHAMPION_VARIANT_ID")
        self.lemonsqueezy_monthly_legend_variant_id = _getenv("LEMONSQUEEZY_MONTHLY_LEGEND_VARIANT_ID")
        self.lemonsqueezy_monthly_hall_of_famer_variant_id = _getenv("LEMONSQUEEZY_MONTHLY_HALL_OF_FAMER_VARIANT_ID")
        self.lemonsqueezy_yearly_supporter_variant_id = _getenv("LEMONSQUEEZY_YEARLY_SUPPORTER_VARIANT_ID")
        self.lemonsqueezy_yearly_champion_variant_id = _getenv("LEMONSQUEEZY_YEARLY_CHAMPION_VARIANT_ID")
        self.lemonsqueezy_yearly_legend_variant_id = _getenv("LEMONSQUEEZY_YEARLY_LEGEND_VARIANT_ID")
        self.lemonsqueezy_yearly_hall_of_famer_variant_id = _getenv("LEMONSQUEEZY_YEARLY_HALL_OF_FAMER_VARIANT_ID")

        self.pricing_cache_ttl_s = max(1, _getenv_int("PRICING_CACHE_TTL_S", 300))

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def resolved_cors_origins(self) -> list[str]:
        raw = self.cors_allow_origins
        if raw is None:
            return ["http://localhost:3000", "http://localhost:8000"]
        if raw.strip() == "*":
            return ["*"]
        origins = [o.strip() for o in raw.split(",") if o.strip()]
        return origins


settings = Settings()
