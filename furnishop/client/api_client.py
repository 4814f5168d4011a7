"""Thin HTTP client for the order API, used by the buyer-side reconciler."""
import logging
from typing import Iterable, Optional

import requests

from furnishop import config
from furnishop.errors import ReconciliationError

logger = logging.getLogger(__name__)


class ShopApiClient:
    def __init__(
        self,
        base_url: str = config.API_BASE_URL,
        user_id: str = "",
        user_name: str = "",
        session: Optional[requests.Session] = None,
        timeout: float = config.HTTP_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "X-User-Id": str(user_id),
            "X-User-Name": user_name,
        })

    def _request(self, method: str, path: str, ok_statuses=(200,), **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise ReconciliationError(f"{method} {path} failed: {e}") from e
        if resp.status_code not in ok_statuses:
            raise ReconciliationError(f"{method} {path} returned {resp.status_code}: {resp.text[:200]}")
        return resp

    def get_order_status(self, order_id: int) -> dict:
        """``{"order_id", "status", "payment_status"}``"""
        return self._request("GET", f"/api/orders/{order_id}/status").json()

    def remove_cart_line(self, user_id: str, line_id: int) -> bool:
        """Remove one cart line. Returns False if it was already gone."""
        resp = self._request("DELETE", f"/api/cart/{user_id}/lines/{line_id}", ok_statuses=(200, 404))
        return resp.status_code == 200

    def decrease_stock(self, order_id: int, lines: Iterable) -> bool:
        payload = {
            "order_id": order_id,
            "items": [{"item_id": l.item_id, "quantity": l.quantity} for l in lines],
        }
        return bool(self._request("POST", "/api/items/decrease-stock", json=payload).json().get("applied"))
