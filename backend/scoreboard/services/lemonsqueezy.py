from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Any

import requests

logger = logging.getLogger(__name__)


class LemonSqueezyError(Exception):
    """Non-2xx response (or transport failure) from the Lemon Squeezy API."""

    def __init__(self, status_code: int, detail: str) -> None:
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


def _error_detail(resp: requests.Response, fallback: str) -> str:
    try:
        body = resp.json() or {}
    except ValueError:
        return fallback
    errors = body.get("errors") if isinstance(body, dict) else None
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        detail = str(errors[0].get("detail") or errors[0].get("title") or "").strip()
        if detail:
            return detail
    return fallback


def verify_webhook_signature(raw_body: bytes, signature: str | None, secret: str | None) -> bool:
    sig = (signature or "").strip()
    if not raw_body or not sig or not secret:
        return False
    digest = hmac.new(key=str(secret).encode("utf-8"), msg=raw_body, digestmod=hashlib.sha256).hexdigest()
    return hmac.compare_digest(digest, sig)


class LemonSqueezyClient:
    def __init__(self, *, api_key: str, store_id: str | None = None, api_url: str = "https://api.lemonsqueezy.com/v1", timeout_s: float = 30) -> None:
        self._api_key = api_key
        self._store_id = store_id
        self._api_url = api_url.rstrip("/")
        self._timeout_s = timeout_s

    def _headers(self, *, with_body: bool = False) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.api+json",
            "Authorization": f"Bearer {self._api_key}",
        }
        if with_body:
            headers["Content-Type"] = "application/vnd.api+json"
        return headers

    def _request(self, method: str, path: str, *, json: dict | None = None, action: str) -> dict[str, Any]:
        url = f"{self._api_url}{path}"
        try:
            resp = requests.request(
                method,
                url,
                headers=self._headers(with_body=json is not None),
                json=json,
                timeout=self._timeout_s,
            )
        except requests.RequestException as e:
            logger.warning("lemonsqueezy.request.failed method=%s path=%s error=%s", method, path, e)
            raise LemonSqueezyError(502, f"Failed to {action}") from e
        if resp.status_code >= 400:
            detail = _error_detail(resp, f"Failed to {action}")
            logger.warning("lemonsqueezy.request.error method=%s path=%s status=%s detail=%s", method, path, resp.status_code, detail)
            raise LemonSqueezyError(int(resp.status_code), detail)
        try:
            return resp.json() or {}
        except ValueError:
            return {}

    def get_subscription(self, subscription_id: str) -> dict[str, Any]:
        return self._request("GET", f"/subscriptions/{subscription_id}", action="fetch subscription")

    def set_cancelled(self, subscription_id: str, cancelled: bool) -> dict[str, Any]:
        payload = {
            "data": {
                "type": "subscriptions",
                "id": str(subscription_id),
                "attributes": {"cancelled": bool(cancelled)},
            }
        }
        action = "cancel subscription" if cancelled else "resume subscription"
        return self._request("PATCH", f"/subscriptions/{subscription_id}", json=payload, action=action)

    def update_variant(self, subscription_id: str, variant_id: str) -> dict[str, Any]:
        payload = {
            "data": {
                "type": "subscriptions",
                "id": str(subscription_id),
                "attributes": {"variant_id": int(variant_id)},
            }
        }
        return self._request("PATCH", f"/subscriptions/{subscription_id}", json=payload, action="update subscription")

    def get_variant(self, variant_id: str) -> dict[str, Any]:
        return self._request("GET", f"/variants/{variant_id}", action="fetch variant")

    def create_checkout(
        self,
        *,
        variant_id: str,
        user_id: str,
        redirect_url: str,
        email: str | None = None,
        custom: dict | None = None,
    ) -> str:
        if not self._store_id:
            raise LemonSqueezyError(500, "LEMONSQUEEZY_STORE_ID is not configured")
        payload: dict = {
            "data": {
                "type": "checkouts",
                "attributes": {
                    "product_options": {
                        "enabled_variants": [int(variant_id)],
                        "redirect_url": redirect_url,
                    },
                    "checkout_data": {
                        "custom": {"user_id": user_id, **(custom or {})},
                    },
                },
                "relationships": {
                    "store": {"data": {"type": "stores", "id": str(self._store_id)}},
                    "variant": {"data": {"type": "variants", "id": str(variant_id)}},
                },
            }
        }
        if email:
            payload["data"]["attributes"]["checkout_data"]["email"] = email

        data = self._request("POST", "/checkouts", json=payload, action="create checkout")
        url = (((data.get("data") or {}).get("attributes") or {}).get("url")) or ""
        if not url:
            raise LemonSqueezyError(502, "Failed to create checkout")
        return str(url)
