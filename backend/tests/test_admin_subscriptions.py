import unittest
from datetime import timedelta
from unittest.mock import patch

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from scoreboard.core.errors import OperationError
from scoreboard.core.security import CurrentUser
from scoreboard.models.audit_log import AdminAuditLog
from scoreboard.models.subscription import Subscription
from scoreboard.services.admin_subscriptions import (
    admin_cancel_subscription,
    admin_resume_subscription,
    cancel_own_subscription,
    change_own_subscription_plan,
    format_action_label,
    gift_subscription,
    link_subscription,
    list_audit_log,
    list_subscriptions,
    record_audit,
    refetch_subscription,
    remove_gift,
    resume_own_subscription,
    verify_link,
)
from scoreboard.services.entitlements import get_current_subscription
from scoreboard.services.lemonsqueezy import LemonSqueezyError
from scoreboard.services.pricing import PricingCache
from scoreboard.services.subscription_sync import CONCURRENT_MODIFICATION

from factories import (
    NOW,
    FakeClock,
    FakeLemonSqueezyClient,
    add_price,
    add_profile,
    add_subscription,
    ls_subscription,
    make_session_factory,
    make_variant_table,
)

ADMIN = CurrentUser(id="admin-1", email="admin@example.com", role="system_admin")


def _audit_rows(db, action):
    return db.query(AdminAuditLog).filter(AdminAuditLog.action == action).all()


class AdminTestCase(unittest.TestCase):
    def setUp(self):
        self.Session = make_session_factory()
        self.db = self.Session()
        add_profile(self.db, "admin-1", email="admin@example.com", role="system_admin")
        add_profile(self.db, "user-1")

    def tearDown(self):
        self.db.close()


class TestGift(AdminTestCase):
    def test_gift_creates_appreciation_row(self):
        out = gift_subscription(self.db, ADMIN, "user-1", now=NOW)
        self.assertTrue(out["success"])
        self.assertIsNone(out["expires_at"])

        sub = get_current_subscription(self.db, "user-1")
        self.assertEqual(sub.tier, "appreciation")
        self.assertEqual(sub.status, "active")
        self.assertEqual(sub.status_formatted, "Active (Gifted)")
        self.assertTrue(sub.is_gifted)
        self.assertEqual(sub.amount_cents, 0)
        self.assertIsNone(sub.lemonsqueezy_subscription_id)

        (row,) = _audit_rows(self.db, "gift_appreciation_tier")
        self.assertEqual(row.target_user_id, "user-1")
        self.assertEqual(row.details["expires_at"], "never")
        self.assertFalse(row.details["had_existing_subscription"])

    def test_gift_with_expiry(self):
        out = gift_subscription(self.db, ADMIN, "user-1", expires_at="2026-12-31T00:00:00Z", now=NOW)
        self.assertEqual(out["expires_at"], "2026-12-31T00:00:00+00:00")

    def test_gift_rejected_over_active_paid_subscription(self):
        add_subscription(self.db, "user-1", status="active", lemonsqueezy_subscription_id="sub_1")
        with self.assertRaises(OperationError) as ctx:
            gift_subscription(self.db, ADMIN, "user-1", now=NOW)
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.details, {"current_status": "active"})
        self.assertEqual(_audit_rows(self.db, "gift_appreciation_tier"), [])

    def test_gift_replaces_lapsed_paid_subscription(self):
        add_subscription(self.db, "user-1", status="expired", tier="champion", lemonsqueezy_subscription_id="sub_1")
        gift_subscription(self.db, ADMIN, "user-1", now=NOW)

        rows = self.db.query(Subscription).filter(Subscription.user_id == "user-1").all()
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].tier, "appreciation")
        self.assertIsNone(rows[0].lemonsqueezy_subscription_id)
        (row,) = _audit_rows(self.db, "gift_appreciation_tier")
        self.assertTrue(row.details["had_existing_subscription"])

    def test_gift_rejects_bad_expiry(self):
        for expires_at, message in (
            ("not-a-date", "Invalid expiration date format"),
            ("2026-01-01T00:00:00Z", "Expiration date must be in the future"),
        ):
            with self.assertRaises(OperationError) as ctx:
                gift_subscription(self.db, ADMIN, "user-1", expires_at=expires_at, now=NOW)
            self.assertEqual(ctx.exception.error, message)

    def test_gift_rejects_admin_and_unknown_users(self):
        with self.assertRaises(OperationError) as ctx:
            gift_subscription(self.db, ADMIN, "admin-1", now=NOW)
        self.assertEqual(ctx.exception.status_code, 400)
        with self.assertRaises(OperationError) as ctx:
            gift_subscription(self.db, ADMIN, "ghost", now=NOW)
        self.assertEqual(ctx.exception.status_code, 404)

    def test_concurrent_modification_is_a_conflict(self):
        sub = add_subscription(self.db, "user-1", status="expired")
        self.assertEqual(sub.version, 1)
        self.db.execute(text("UPDATE subscriptions SET version = version + 1 WHERE id = :id"), {"id": sub.id})

        with self.assertRaises(OperationError) as ctx:
            gift_subscription(self.db, ADMIN, "user-1", now=NOW)
        self.assertEqual(ctx.exception.status_code, 409)
        self.assertEqual(ctx.exception.error, CONCURRENT_MODIFICATION)


class TestRemoveGift(AdminTestCase):
    def test_remove_gift(self):
        gift_subscription(self.db, ADMIN, "user-1", now=NOW)
        out = remove_gift(self.db, ADMIN, "user-1")
        self.assertTrue(out["success"])
        self.assertIsNone(get_current_subscription(self.db, "user-1"))
        (row,) = _audit_rows(self.db, "remove_appreciation_tier")
        self.assertEqual(row.details["removed_tier"], "appreciation")

    def test_remove_gift_requires_gifted_row(self):
        with self.assertRaises(OperationError) as ctx:
            remove_gift(self.db, ADMIN, "user-1")
        self.assertEqual(ctx.exception.status_code, 404)

        add_subscription(self.db, "user-1", status="active")
        with self.assertRaises(OperationError) as ctx:
            remove_gift(self.db, ADMIN, "user-1")
        self.assertEqual(ctx.exception.status_code, 400)


class TestLink(AdminTestCase):
    def setUp(self):
        super().setUp()
        self.client = FakeLemonSqueezyClient(subscriptions={"sub_1": ls_subscription("sub_1")})
        self.variants = make_variant_table()
        self.cache = PricingCache(ttl_s=300, clock=FakeClock())

    def _link(self, ls_id="sub_1", override=False, user_id="user-1"):
        return link_subscription(
            self.db,
            ADMIN,
            user_id,
            ls_id,
            override=override,
            client=self.client,
            variant_table=self.variants,
            pricing_cache=self.cache,
        )

    def test_link_maps_variant_and_live_price(self):
        out = self._link()
        self.assertEqual(out["subscription"]["tier"], "champion")
        self.assertEqual(out["subscription"]["billing_interval"], "yearly")

        sub = get_current_subscription(self.db, "user-1")
        self.assertEqual(sub.lemonsqueezy_subscription_id, "sub_1")
        self.assertEqual(sub.amount_cents, 9900)
        self.assertEqual(sub.customer_portal_url, "https://portal.example.com/c")
        (row,) = _audit_rows(self.db, "link_subscription")
        self.assertFalse(row.details["email_override_used"])

    def test_link_falls_back_to_cached_price(self):
        add_price(self.db, "champion", "yearly", 8800, "v789")
        self.client.subscriptions["sub_2"] = ls_subscription("sub_2", price=None)
        self._link("sub_2")
        self.assertEqual(get_current_subscription(self.db, "user-1").amount_cents, 8800)

    def test_link_without_any_price_is_rejected(self):
        self.client.subscriptions["sub_2"] = ls_subscription("sub_2", price=None)
        with self.assertRaises(OperationError) as ctx:
            self._link("sub_2")
        self.assertEqual(ctx.exception.status_code, 400)

    def test_email_mismatch_needs_override(self):
        self.client.subscriptions["sub_1"] = ls_subscription("sub_1", email="someone@else.com")
        with self.assertRaises(OperationError) as ctx:
            self._link()
        self.assertEqual(ctx.exception.error, "Email mismatch")
        self.assertEqual(ctx.exception.details["subscription_email"], "someone@else.com")
        self.assertIsNone(get_current_subscription(self.db, "user-1"))

        self._link(override=True)
        (row,) = _audit_rows(self.db, "link_subscription")
        self.assertTrue(row.details["email_override_used"])

    def test_email_comparison_ignores_case(self):
        self.client.subscriptions["sub_1"] = ls_subscription("sub_1", email="USER-1@Example.com")
        self._link()
        (row,) = _audit_rows(self.db, "link_subscription")
        self.assertFalse(row.details["email_override_used"])

    def test_already_linked_to_another_user(self):
        add_subscription(self.db, "user-2", lemonsqueezy_subscription_id="sub_1")
        with self.assertRaises(OperationError) as ctx:
            self._link()
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.details, {"linked_user_id": "user-2"})

    def test_unknown_variant(self):
        self.client.subscriptions["sub_1"] = ls_subscription("sub_1", variant_id="v999")
        with self.assertRaises(OperationError) as ctx:
            self._link()
        self.assertEqual(ctx.exception.status_code, 400)

    def test_upstream_errors(self):
        with self.assertRaises(OperationError) as ctx:
            self._link("missing")
        self.assertEqual(ctx.exception.status_code, 404)

        self.client.fail_with = LemonSqueezyError(500, "Server Error")
        with self.assertRaises(OperationError) as ctx:
            self._link()
        self.assertEqual(ctx.exception.status_code, 502)

    def test_relink_updates_existing_row(self):
        self._link()
        self.client.subscriptions["sub_1"] = ls_subscription("sub_1", variant_id="v100", price=500)
        self._link()
        rows = self.db.query(Subscription).filter(Subscription.user_id == "user-1").all()
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].tier, "supporter")
        self.assertEqual(rows[0].billing_interval, "monthly")


class TestVerifyLink(AdminTestCase):
    def setUp(self):
        super().setUp()
        self.client = FakeLemonSqueezyClient(subscriptions={"sub_1": ls_subscription("sub_1")})
        self.variants = make_variant_table()
        self.cache = PricingCache(ttl_s=300, clock=FakeClock())

    def _verify(self, ls_id="sub_1"):
        return verify_link(self.db, ls_id, client=self.client, variant_table=self.variants, pricing_cache=self.cache)

    def test_preview_of_unlinked_subscription(self):
        out = self._verify()
        self.assertFalse(out["already_linked"])
        self.assertIsNone(out["linked_user"])
        preview = out["subscription"]
        self.assertEqual(preview["customer_email"], "user-1@example.com")
        self.assertEqual(preview["tier"], "champion")
        self.assertEqual(preview["billing_interval"], "yearly")
        self.assertEqual(preview["amount_cents"], 9900)
        self.assertEqual(preview["currency"], "USD")
        self.assertTrue(preview["test_mode"])
        self.assertEqual(self.db.query(Subscription).count(), 0)
        self.assertEqual(self.db.query(AdminAuditLog).count(), 0)

    def test_reports_existing_link(self):
        add_subscription(self.db, "user-1", lemonsqueezy_subscription_id="sub_1")
        out = self._verify()
        self.assertTrue(out["already_linked"])
        self.assertEqual(out["linked_user"], {"user_id": "user-1", "email": "user-1@example.com", "full_name": None})

    def test_unmapped_variant_has_no_tier_or_price(self):
        self.client.subscriptions["sub_1"] = ls_subscription("sub_1", variant_id="v999", price=None)
        preview = self._verify()["subscription"]
        self.assertIsNone(preview["tier"])
        self.assertIsNone(preview["billing_interval"])
        self.assertIsNone(preview["amount_cents"])

    def test_cached_price_fills_missing_live_price(self):
        add_price(self.db, "champion", "yearly", 8800, "v789")
        self.client.subscriptions["sub_1"] = ls_subscription("sub_1", price=None)
        self.assertEqual(self._verify()["subscription"]["amount_cents"], 8800)

    def test_upstream_errors(self):
        with self.assertRaises(OperationError) as ctx:
            self._verify("missing")
        self.assertEqual(ctx.exception.status_code, 404)

        self.client.fail_with = LemonSqueezyError(500, "Server Error")
        with self.assertRaises(OperationError) as ctx:
            self._verify()
        self.assertEqual(ctx.exception.status_code, 502)


class TestCancelResume(AdminTestCase):
    def setUp(self):
        super().setUp()
        self.client = FakeLemonSqueezyClient()
        self.user = CurrentUser(id="user-1", email="user-1@example.com", role="user")

    def test_cancel_own_subscription(self):
        add_subscription(self.db, "user-1", status="active", lemonsqueezy_subscription_id="sub_1")
        out = cancel_own_subscription(self.db, self.user, "sub_1", self.client, now=NOW)

        self.assertFalse(out["degraded"])
        self.assertEqual(out["subscription"]["ends_at"], "2026-07-01T00:00:00+00:00")
        self.assertIn(("set_cancelled", "sub_1", True), self.client.calls)
        sub = get_current_subscription(self.db, "user-1")
        self.assertEqual(sub.status, "cancelled")
        self.assertEqual(sub.cancelled_at.replace(tzinfo=None).isoformat(), "2026-07-01T00:00:00")

    def test_cancel_rejects_terminal_states(self):
        add_subscription(self.db, "user-1", status="cancelled", lemonsqueezy_subscription_id="sub_1")
        with self.assertRaises(OperationError) as ctx:
            cancel_own_subscription(self.db, self.user, "sub_1", self.client, now=NOW)
        self.assertEqual(ctx.exception.error, "Subscription is already cancelled")

        add_subscription(self.db, "user-1", status="expired", lemonsqueezy_subscription_id="sub_2")
        with self.assertRaises(OperationError) as ctx:
            cancel_own_subscription(self.db, self.user, "sub_2", self.client, now=NOW)
        self.assertEqual(ctx.exception.error, "Subscription has already expired")
        self.assertEqual(self.client.calls, [])

    def test_cannot_cancel_someone_elses_subscription(self):
        add_subscription(self.db, "user-2", status="active", lemonsqueezy_subscription_id="sub_9")
        with self.assertRaises(OperationError) as ctx:
            cancel_own_subscription(self.db, self.user, "sub_9", self.client, now=NOW)
        self.assertEqual(ctx.exception.status_code, 403)

        with self.assertRaises(OperationError) as ctx:
            cancel_own_subscription(self.db, self.user, "nope", self.client, now=NOW)
        self.assertEqual(ctx.exception.status_code, 404)

    def test_upstream_failure_leaves_row_untouched(self):
        add_subscription(self.db, "user-1", status="active", lemonsqueezy_subscription_id="sub_1")
        self.client.fail_with = LemonSqueezyError(422, "Cannot cancel")
        with self.assertRaises(OperationError) as ctx:
            cancel_own_subscription(self.db, self.user, "sub_1", self.client, now=NOW)
        self.assertEqual(ctx.exception.status_code, 502)
        self.assertEqual(ctx.exception.error, "Cannot cancel")
        self.assertEqual(get_current_subscription(self.db, "user-1").status, "active")

    def test_local_mirror_failure_is_degraded(self):
        add_subscription(self.db, "user-1", status="active", lemonsqueezy_subscription_id="sub_1")
        failure = OperationalError("update", {}, Exception("database is locked"))
        with patch.object(self.db, "commit", side_effect=failure):
            with self.assertLogs("scoreboard.services.admin_subscriptions", level="WARNING"):
                out = cancel_own_subscription(self.db, self.user, "sub_1", self.client, now=NOW)
        self.assertTrue(out["success"])
        self.assertTrue(out["degraded"])
        self.assertEqual(get_current_subscription(self.db, "user-1").status, "active")

    def test_resume_within_period(self):
        add_subscription(
            self.db,
            "user-1",
            status="cancelled",
            lemonsqueezy_subscription_id="sub_1",
            cancelled_at=NOW + timedelta(days=10),
        )
        out = resume_own_subscription(self.db, self.user, "sub_1", self.client, now=NOW)
        self.assertEqual(out["subscription"]["status"], "active")
        sub = get_current_subscription(self.db, "user-1")
        self.assertEqual(sub.status, "active")
        self.assertIsNone(sub.cancelled_at)

    def test_resume_rejections(self):
        add_subscription(self.db, "user-1", status="active", lemonsqueezy_subscription_id="sub_1")
        with self.assertRaises(OperationError) as ctx:
            resume_own_subscription(self.db, self.user, "sub_1", self.client, now=NOW)
        self.assertEqual(ctx.exception.error, "Subscription is not cancelled")

        add_subscription(
            self.db,
            "user-1",
            status="cancelled",
            lemonsqueezy_subscription_id="sub_2",
            cancelled_at=NOW - timedelta(days=1),
        )
        with self.assertRaises(OperationError) as ctx:
            resume_own_subscription(self.db, self.user, "sub_2", self.client, now=NOW)
        self.assertEqual(ctx.exception.error, "Subscription period has ended. Please start a new subscription.")

    def test_admin_cancel_and_resume_are_audited(self):
        add_subscription(self.db, "user-1", status="active", lemonsqueezy_subscription_id="sub_1")
        admin_cancel_subscription(self.db, ADMIN, "user-1", self.client, now=NOW)
        admin_resume_subscription(self.db, ADMIN, "user-1", self.client, now=NOW)

        (cancel_row,) = _audit_rows(self.db, "cancel_subscription")
        self.assertEqual(cancel_row.details["lemonsqueezy_subscription_id"], "sub_1")
        (resume_row,) = _audit_rows(self.db, "resume_subscription")
        self.assertEqual(resume_row.details["status"], "active")

    def test_admin_cannot_cancel_gifted_row(self):
        gift_subscription(self.db, ADMIN, "user-1", now=NOW)
        with self.assertRaises(OperationError) as ctx:
            admin_cancel_subscription(self.db, ADMIN, "user-1", self.client, now=NOW)
        self.assertEqual(ctx.exception.status_code, 400)


class TestChangePlan(AdminTestCase):
    def setUp(self):
        super().setUp()
        self.client = FakeLemonSqueezyClient(subscriptions={"sub_1": ls_subscription("sub_1")})
        self.variants = make_variant_table()
        self.cache = PricingCache(ttl_s=300, clock=FakeClock())
        self.user = CurrentUser(id="user-1", email="user-1@example.com", role="user")
        add_subscription(self.db, "user-1", status="active", lemonsqueezy_subscription_id="sub_1", amount_cents=500)

    def _change(self, tier, interval, ls_id="sub_1"):
        return change_own_subscription_plan(
            self.db,
            self.user,
            ls_id,
            tier,
            interval,
            client=self.client,
            variant_table=self.variants,
            pricing_cache=self.cache,
        )

    def test_upgrade_mirrors_new_plan(self):
        add_price(self.db, "champion", "monthly", 1000, "v200")
        out = self._change("champion", "monthly")

        self.assertTrue(out["success"])
        self.assertFalse(out["degraded"])
        self.assertEqual(out["subscription"]["variant_id"], "v200")
        self.assertIn(("update_variant", "sub_1", "v200"), self.client.calls)
        sub = get_current_subscription(self.db, "user-1")
        self.assertEqual(sub.tier, "champion")
        self.assertEqual(sub.billing_interval, "monthly")
        self.assertEqual(sub.lemonsqueezy_variant_id, "v200")
        self.assertEqual(sub.amount_cents, 1000)

    def test_amount_kept_without_cached_price(self):
        self._change("supporter", "yearly")
        sub = get_current_subscription(self.db, "user-1")
        self.assertEqual(sub.billing_interval, "yearly")
        self.assertEqual(sub.amount_cents, 500)

    def test_unconfigured_or_unknown_plan_is_rejected(self):
        for tier, interval in (("legend", "monthly"), ("platinum", "monthly")):
            with self.assertRaises(OperationError) as ctx:
                self._change(tier, interval)
            self.assertEqual(ctx.exception.status_code, 400)
            self.assertEqual(ctx.exception.error, "Invalid tier or billing interval")
        self.assertEqual(self.client.calls, [])

    def test_ownership_is_enforced(self):
        add_subscription(self.db, "user-2", status="active", lemonsqueezy_subscription_id="sub_9")
        with self.assertRaises(OperationError) as ctx:
            self._change("champion", "monthly", ls_id="sub_9")
        self.assertEqual(ctx.exception.status_code, 403)
        with self.assertRaises(OperationError) as ctx:
            self._change("champion", "monthly", ls_id="nope")
        self.assertEqual(ctx.exception.status_code, 404)

    def test_paypal_subscription_goes_through_portal(self):
        self.client.update_fail_with = LemonSqueezyError(422, "PayPal subscriptions cannot be updated via the API.")
        out = self._change("champion", "monthly")
        self.assertFalse(out["success"])
        self.assertTrue(out["requires_portal"])
        self.assertEqual(out["portal_url"], "https://portal.example.com/c/update")
        self.assertEqual(get_current_subscription(self.db, "user-1").tier, "supporter")

    def test_other_upstream_errors_are_502(self):
        self.client.update_fail_with = LemonSqueezyError(422, "Card declined")
        with self.assertRaises(OperationError) as ctx:
            self._change("champion", "monthly")
        self.assertEqual(ctx.exception.status_code, 502)
        self.assertEqual(ctx.exception.error, "Card declined")
        self.assertEqual(get_current_subscription(self.db, "user-1").tier, "supporter")

    def test_local_mirror_failure_is_degraded(self):
        failure = OperationalError("update", {}, Exception("database is locked"))
        with patch.object(self.db, "commit", side_effect=failure):
            with self.assertLogs("scoreboard.services.admin_subscriptions", level="WARNING"):
                out = self._change("champion", "monthly")
        self.assertTrue(out["success"])
        self.assertTrue(out["degraded"])


class TestRefetch(AdminTestCase):
    def test_refetch_overwrites_local_fields(self):
        add_subscription(self.db, "user-1", status="active", tier="supporter", lemonsqueezy_subscription_id="sub_1")
        client = FakeLemonSqueezyClient(
            subscriptions={
                "sub_1": ls_subscription("sub_1", status="cancelled", cancelled=True, ends_at="2026-06-20T00:00:00Z")
            }
        )
        out = refetch_subscription(
            self.db,
            ADMIN,
            "user-1",
            client=client,
            variant_table=make_variant_table(),
            pricing_cache=PricingCache(clock=FakeClock()),
        )
        self.assertEqual(out["subscription"]["status"], "cancelled")
        self.assertEqual(out["subscription"]["tier"], "champion")

        (row,) = _audit_rows(self.db, "refetch_subscription")
        self.assertEqual(row.details["previous_tier"], "supporter")
        self.assertEqual(row.details["new_tier"], "champion")
        self.assertEqual(row.details["new_status"], "cancelled")

    def test_refetch_keeps_amount_without_price(self):
        add_subscription(self.db, "user-1", status="active", amount_cents=700, lemonsqueezy_subscription_id="sub_1")
        client = FakeLemonSqueezyClient(subscriptions={"sub_1": ls_subscription("sub_1", price=None)})
        refetch_subscription(
            self.db,
            ADMIN,
            "user-1",
            client=client,
            variant_table=make_variant_table(),
            pricing_cache=PricingCache(clock=FakeClock()),
        )
        self.assertEqual(get_current_subscription(self.db, "user-1").amount_cents, 700)

    def test_refetch_requires_linked_paid_row(self):
        add_subscription(self.db, "user-1", status="active")
        with self.assertRaises(OperationError) as ctx:
            refetch_subscription(
                self.db,
                ADMIN,
                "user-1",
                client=FakeLemonSqueezyClient(),
                variant_table=make_variant_table(),
                pricing_cache=PricingCache(clock=FakeClock()),
            )
        self.assertEqual(ctx.exception.status_code, 400)


class TestListingAndAudit(AdminTestCase):
    def test_audit_write_failure_is_swallowed(self):
        failure = OperationalError("insert", {}, Exception("disk full"))
        with patch.object(self.db, "commit", side_effect=failure):
            with self.assertLogs("scoreboard.services.admin_subscriptions", level="ERROR"):
                ok = record_audit(self.db, admin_id="admin-1", action="sync_pricing", target_user_id=None, details={})
        self.assertFalse(ok)

    def test_audit_log_pagination_and_labels(self):
        for i in range(3):
            record_audit(self.db, admin_id="admin-1", action="link_subscription", target_user_id="user-1", details={"i": i})
        out = list_audit_log(self.db, page=1, limit=2)
        self.assertEqual(len(out["logs"]), 2)
        self.assertEqual(out["pagination"], {"page": 1, "limit": 2, "total": 3, "has_more": True})
        log = out["logs"][0]
        self.assertEqual(log["action_label"], "Linked Subscription")
        self.assertEqual(log["admin"]["email"], "admin@example.com")
        self.assertEqual(log["target_user"]["id"], "user-1")

        last = list_audit_log(self.db, page=2, limit=2)
        self.assertEqual(len(last["logs"]), 1)
        self.assertFalse(last["pagination"]["has_more"])

    def test_unknown_action_label(self):
        self.assertEqual(format_action_label("reset_password"), "Reset Password")

    def test_list_subscriptions(self):
        add_subscription(self.db, "user-1", status="active")
        out = list_subscriptions(self.db, page=1, limit=500, now=NOW)
        self.assertEqual(out["pagination"]["limit"], 100)
        self.assertEqual(out["pagination"]["total"], 2)
        by_id = {u["id"]: u for u in out["users"]}
        self.assertTrue(by_id["user-1"]["is_supporter"])
        self.assertEqual(by_id["user-1"]["subscription"]["tier"], "supporter")
        self.assertIsNone(by_id["admin-1"]["subscription"])

    def test_expired_gift_is_not_listed_as_supporter(self):
        add_subscription(
            self.db,
            "user-1",
            status="active",
            tier="appreciation",
            is_gifted=True,
            gifted_expires_at=NOW - timedelta(days=1),
        )
        by_id = {u["id"]: u for u in list_subscriptions(self.db, now=NOW)["users"]}
        self.assertFalse(by_id["user-1"]["is_supporter"])


if __name__ == "__main__":
    unittest.main()
