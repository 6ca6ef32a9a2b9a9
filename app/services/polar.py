"""Polar payments API integration."""

import logging
from typing import Any

import httpx

from app.config import settings

logger = logging.getLogger(__name__)

POLAR_BASE_URLS = {
    "sandbox": "https://sandbox-api.polar.sh",
    "production": "https://api.polar.sh",
}


class PolarGateway:
    """Thin wrapper around the Polar REST API."""

    def __init__(self) -> None:
        self._access_token = settings.polar_access_token
        self._base_url = POLAR_BASE_URLS.get(
            settings.polar_server, POLAR_BASE_URLS["sandbox"]
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
        }

    def is_configured(self) -> bool:
        return bool(self._access_token)

    def _post(self, path: str, payload: dict[str, Any], action: str) -> dict[str, Any]:
        if not self.is_configured():
            raise RuntimeError("Polar is not configured")
        try:
            with httpx.Client(timeout=30) as client:
                resp = client.post(
                    f"{self._base_url}{path}",
                    json=payload,
                    headers=self._headers(),
                )
        except httpx.HTTPError as exc:
            logger.error("Polar %s request error: %s", action, exc)
            raise ValueError(f"Failed to {action}") from exc
        if resp.status_code not in (200, 201):
            logger.error("Polar %s failed: %s %s", action, resp.status_code, resp.text)
            raise ValueError(f"Failed to {action}")
        result: dict[str, Any] = resp.json()
        return result

    # ── Checkout ─────────────────────────────────────────

    def create_checkout(
        self,
        product_id: str,
        customer_external_id: str,
        success_url: str,
    ) -> dict[str, Any]:
        """Create a hosted checkout session for one product."""
        data = self._post(
            "/v1/checkouts/",
            {
                "products": [product_id],
                "external_customer_id": customer_external_id,
                "success_url": success_url,
            },
            "create checkout",
        )
        logger.info(
            "Created Polar checkout: %s",
            data.get("id"),
            extra={"user_id": customer_external_id},
        )
        return data

    # ── Customer portal ──────────────────────────────────

    def create_customer_session(self, customer_external_id: str) -> dict[str, Any]:
        """Create a customer session; its ``customer_portal_url`` opens the portal."""
        return self._post(
            "/v1/customer-sessions/",
            {"external_customer_id": customer_external_id},
            "create customer session",
        )


polar_gateway = PolarGateway()
