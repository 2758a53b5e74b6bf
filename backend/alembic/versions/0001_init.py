"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _inspector():
    from sqlalchemy import inspect as sa_inspect
    return sa_inspect(op.get_bind())


def _ts(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), **kwargs)


def upgrade() -> None:
    inspector = _inspector()
    existing_tables = set(inspector.get_table_names())

    def existing_indexes(table: str) -> set[str]:
        if table not in existing_tables:
            return set()
        return {idx["name"] for idx in inspector.get_indexes(table)}

    if "user_profiles" not in existing_tables:
        op.create_table(
            "user_profiles",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("email", sa.String(), nullable=True),
            sa.Column("full_name", sa.String(), nullable=True),
            sa.Column("role", sa.String(), nullable=True),
            _ts("created_at", server_default=sa.text("(CURRENT_TIMESTAMP)")),
        )
    idxs = existing_indexes("user_profiles")
    if "ix_user_profiles_id" not in idxs:
        op.create_index("ix_user_profiles_id", "user_profiles", ["id"])
    if "ix_user_profiles_email" not in idxs:
        op.create_index("ix_user_profiles_email", "user_profiles", ["email"])

    if "subscriptions" not in existing_tables:
        op.create_table(
            "subscriptions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.String(), nullable=False),
            sa.Column("status", sa.String(), nullable=False),
            sa.Column("status_formatted", sa.String(), nullable=True),
            sa.Column("tier", sa.String(), nullable=False),
            sa.Column("billing_interval", sa.String(), nullable=False, server_default="monthly"),
            sa.Column("amount_cents", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("currency", sa.String(), nullable=False, server_default="USD"),
            sa.Column("is_gifted", sa.Boolean(), nullable=False, server_default=sa.false()),
            _ts("gifted_expires_at", nullable=True),
            _ts("cancelled_at", nullable=True),
            sa.Column("lemonsqueezy_subscription_id", sa.String(), nullable=True),
            sa.Column("lemonsqueezy_customer_id", sa.String(), nullable=True),
            sa.Column("lemonsqueezy_order_id", sa.String(), nullable=True),
            sa.Column("lemonsqueezy_product_id", sa.String(), nullable=True),
            sa.Column("lemonsqueezy_variant_id", sa.String(), nullable=True),
            sa.Column("card_brand", sa.String(), nullable=True),
            sa.Column("card_last_four", sa.String(), nullable=True),
            sa.Column("customer_portal_url", sa.String(), nullable=True),
            sa.Column("update_payment_method_url", sa.String(), nullable=True),
            sa.Column("customer_portal_update_subscription_url", sa.String(), nullable=True),
            sa.Column("test_mode", sa.Boolean(), nullable=False, server_default=sa.false()),
            _ts("current_period_start", nullable=True),
            _ts("current_period_end", nullable=True),
            _ts("created_at", server_default=sa.text("(CURRENT_TIMESTAMP)")),
            _ts("updated_at", server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        )
    idxs = existing_indexes("subscriptions")
    if "ix_subscriptions_id" not in idxs:
        op.create_index("ix_subscriptions_id", "subscriptions", ["id"])
    if "ix_subscriptions_user_id" not in idxs:
        op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"])
    if "ix_subscriptions_status" not in idxs:
        op.create_index("ix_subscriptions_status", "subscriptions", ["status"])
    if "ix_subscriptions_tier" not in idxs:
        op.create_index("ix_subscriptions_tier", "subscriptions", ["tier"])
    if "ix_subscriptions_created_at" not in idxs:
        op.create_index("ix_subscriptions_created_at", "subscriptions", ["created_at"])
    if "ix_subscriptions_lemonsqueezy_subscription_id" not in idxs:
        op.create_index(
            "ix_subscriptions_lemonsqueezy_subscription_id",
            "subscriptions",
            ["lemonsqueezy_subscription_id"],
            unique=True,
        )
    if "ix_subscriptions_lemonsqueezy_customer_id" not in idxs:
        op.create_index("ix_subscriptions_lemonsqueezy_customer_id", "subscriptions", ["lemonsqueezy_customer_id"])

    if "tier_pricing" not in existing_tables:
        op.create_table(
            "tier_pricing",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("tier", sa.String(), nullable=False),
            sa.Column("billing_interval", sa.String(), nullable=False),
            sa.Column("amount_cents", sa.Integer(), nullable=False),
            sa.Column("currency", sa.String(), nullable=False, server_default="USD"),
            sa.Column("lemonsqueezy_variant_id", sa.String(), nullable=False, server_default=""),
            _ts("last_synced_at", nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
            _ts("created_at", server_default=sa.text("(CURRENT_TIMESTAMP)")),
            _ts("updated_at", server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.UniqueConstraint("tier", "billing_interval", name="uq_tier_pricing_tier_interval"),
            sa.CheckConstraint("amount_cents >= 0", name="chk_tier_pricing_amount"),
        )
    idxs = existing_indexes("tier_pricing")
    if "ix_tier_pricing_id" not in idxs:
        op.create_index("ix_tier_pricing_id", "tier_pricing", ["id"])

    if "admin_audit_log" not in existing_tables:
        op.create_table(
            "admin_audit_log",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("admin_id", sa.String(), nullable=False),
            sa.Column("action", sa.String(), nullable=False),
            sa.Column("target_user_id", sa.String(), nullable=True),
            sa.Column("details", sa.JSON(), nullable=True),
            _ts("created_at", nullable=True),
        )
    idxs = existing_indexes("admin_audit_log")
    for col in ("id", "admin_id", "action", "target_user_id", "created_at"):
        name = f"ix_admin_audit_log_{col}"
        if name not in idxs:
            op.create_index(name, "admin_audit_log", [col])

    if "payment_history" not in existing_tables:
        op.create_table(
            "payment_history",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.String(), nullable=False),
            sa.Column("lemonsqueezy_order_id", sa.String(), nullable=False),
            sa.Column("lemonsqueezy_subscription_id", sa.String(), nullable=True),
            sa.Column("lemonsqueezy_customer_id", sa.String(), nullable=True),
            sa.Column("lemonsqueezy_product_id", sa.String(), nullable=True),
            sa.Column("lemonsqueezy_variant_id", sa.String(), nullable=True),
            sa.Column("order_number", sa.Integer(), nullable=True),
            sa.Column("order_identifier", sa.String(), nullable=True),
            sa.Column("status", sa.String(), nullable=False, server_default="paid"),
            sa.Column("status_formatted", sa.String(), nullable=True),
            sa.Column("currency", sa.String(), nullable=False, server_default="USD"),
            sa.Column("subtotal", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("discount_total", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("tax", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("total", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("total_usd", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("tax_name", sa.String(), nullable=True),
            sa.Column("tax_rate", sa.Float(), nullable=True),
            sa.Column("refunded", sa.Boolean(), nullable=False, server_default=sa.false()),
            _ts("refunded_at", nullable=True),
            sa.Column("user_name", sa.String(), nullable=True),
            sa.Column("user_email", sa.String(), nullable=True),
            sa.Column("receipt_url", sa.String(), nullable=True),
            sa.Column("test_mode", sa.Boolean(), nullable=False, server_default=sa.false()),
            _ts("created_at", server_default=sa.text("(CURRENT_TIMESTAMP)")),
            _ts("updated_at", server_default=sa.text("(CURRENT_TIMESTAMP)")),
        )
    idxs = existing_indexes("payment_history")
    if "ix_payment_history_lemonsqueezy_order_id" not in idxs:
        op.create_index(
            "ix_payment_history_lemonsqueezy_order_id",
            "payment_history",
            ["lemonsqueezy_order_id"],
            unique=True,
        )
    for col in ("id", "user_id", "lemonsqueezy_subscription_id", "created_at"):
        name = f"ix_payment_history_{col}"
        if name not in idxs:
            op.create_index(name, "payment_history", [col])

    if "scoreboards" not in existing_tables:
        op.create_table(
            "scoreboards",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("owner_id", sa.String(), nullable=False),
            sa.Column("title", sa.String(), nullable=False, server_default=""),
            sa.Column("visibility", sa.String(), nullable=False, server_default="public"),
            sa.Column("is_locked", sa.Boolean(), nullable=False, server_default=sa.false()),
            _ts("created_at", server_default=sa.text("(CURRENT_TIMESTAMP)")),
        )
    idxs = existing_indexes("scoreboards")
    if "ix_scoreboards_owner_id" not in idxs:
        op.create_index("ix_scoreboards_owner_id", "scoreboards", ["owner_id"])
    if "ix_scoreboards_visibility" not in idxs:
        op.create_index("ix_scoreboards_visibility", "scoreboards", ["visibility"])

    if "scoreboard_entries" not in existing_tables:
        op.create_table(
            "scoreboard_entries",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column(
                "scoreboard_id",
                sa.String(),
                sa.ForeignKey("scoreboards.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("name", sa.String(), nullable=False, server_default=""),
            sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
            _ts("created_at", server_default=sa.text("(CURRENT_TIMESTAMP)")),
        )
    idxs = existing_indexes("scoreboard_entries")
    if "ix_scoreboard_entries_scoreboard_id" not in idxs:
        op.create_index("ix_scoreboard_entries_scoreboard_id", "scoreboard_entries", ["scoreboard_id"])

    if "kiosk_configs" not in existing_tables:
        op.create_table(
            "kiosk_configs",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column(
                "scoreboard_id",
                sa.String(),
                sa.ForeignKey("scoreboards.id", ondelete="CASCADE"),
                nullable=False,
                unique=True,
            ),
            sa.Column("slide_duration_seconds", sa.Integer(), nullable=False, server_default="10"),
            sa.Column("scoreboard_position", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
            _ts("created_at", server_default=sa.text("(CURRENT_TIMESTAMP)")),
        )

    if "kiosk_slides" not in existing_tables:
        op.create_table(
            "kiosk_slides",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column(
                "kiosk_config_id",
                sa.String(),
                sa.ForeignKey("kiosk_configs.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("position", sa.Integer(), nullable=False),
            sa.Column("slide_type", sa.String(), nullable=False),
            sa.Column("image_url", sa.String(), nullable=True),
            sa.Column("thumbnail_url", sa.String(), nullable=True),
            sa.Column("duration_override_seconds", sa.Integer(), nullable=True),
            sa.Column("file_name", sa.String(), nullable=True),
            sa.Column("file_size", sa.Integer(), nullable=True),
            _ts("created_at", server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.UniqueConstraint("kiosk_config_id", "position", name="uq_kiosk_slides_config_position"),
            sa.CheckConstraint("position >= 0", name="chk_kiosk_slides_position"),
        )
    idxs = existing_indexes("kiosk_slides")
    if "ix_kiosk_slides_kiosk_config_id" not in idxs:
        op.create_index("ix_kiosk_slides_kiosk_config_id", "kiosk_slides", ["kiosk_config_id"])


def downgrade() -> None:
    for table in (
        "kiosk_slides",
        "kiosk_configs",
        "scoreboard_entries",
        "scoreboards",
        "payment_history",
        "admin_audit_log",
        "tier_pricing",
        "subscriptions",
        "user_profiles",
    ):
        op.drop_table(table)
