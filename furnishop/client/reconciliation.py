"""Buyer-side payment reconciliation.

After the buyer is sent to the external payment gateway there is no
callback into the app. Instead the app re-checks the order every time it
comes back to the foreground (or a push arrives) and, once the payment is
confirmed, finishes checkout: clear the purchased cart lines, decrement
stock once, drop the pending marker, go to the success view.

No lock or connection is held while the buyer is away; every check is a
fresh poll driven by :meth:`PaymentReconciler.reconcile`.
"""
import logging
import threading
from enum import Enum
from typing import Callable, Iterable, Optional

from furnishop.client.api_client import ShopApiClient
from furnishop.client.pending_store import PendingOrder, PendingOrderStore, PurchasedLine
from furnishop.errors import ReconciliationError
from furnishop.utils.enums import OrderStatus, PaymentStatus

logger = logging.getLogger(__name__)

CONFIRMED = {PaymentStatus.DOWNPAYMENT_RECEIVED.value, PaymentStatus.FULLY_PAID.value}
RESUMING_FROM = {"background", "inactive"}


class ReconcileResult(str, Enum):
    NOTHING_PENDING = "nothing_pending"
    BUSY = "busy"
    UNRESOLVED = "unresolved"
    CANCELLED = "cancelled"
    INCOMPLETE = "incomplete"
    COMPLETED = "completed"


class PaymentReconciler:
    def __init__(
        self,
        store: PendingOrderStore,
        api: ShopApiClient,
        on_success: Optional[Callable[[int], None]] = None,
    ):
        self.store = store
        self.api = api
        self.on_success = on_success
        self._lock = threading.Lock()

    # ---------- lifecycle hooks ----------
    def begin(self, order_id: int, user_id: str, lines: Iterable) -> PendingOrder:
        """Persist the marker. Call before redirecting to the gateway."""
        purchased = []
        for l in lines:
            if isinstance(l, dict):
                purchased.append(PurchasedLine.from_dict(l))
            else:
                line_id = getattr(l, "cart_line_id", None)
                purchased.append(PurchasedLine(int(l.item_id), int(l.quantity), line_id))
        pending = PendingOrder(order_id=int(order_id), user_id=str(user_id), lines=purchased)
        self.store.save(pending)
        logger.info("Pending payment recorded for order %s (%d lines)", order_id, len(purchased))
        return pending

    def on_app_state_change(self, previous: str, current: str) -> Optional[ReconcileResult]:
        if previous in RESUMING_FROM and current == "active":
            return self.reconcile()
        return None

    def on_push(self, order_id: int) -> Optional[ReconcileResult]:
        pending = self.store.load()
        if pending is None or pending.order_id != int(order_id):
            return None
        return self.reconcile()

    def abandon(self):
        """Buyer backed out of checkout: forget the order without touching cart or stock."""
        pending = self.store.load()
        if pending:
            logger.info("Pending payment for order %s abandoned", pending.order_id)
        self.store.clear()

    # ---------- the check ----------
    def reconcile(self) -> ReconcileResult:
        if not self._lock.acquire(blocking=False):
            logger.debug("Reconciliation already running, skipping")
            return ReconcileResult.BUSY
        try:
            return self._reconcile()
        finally:
            self._lock.release()

    def _reconcile(self) -> ReconcileResult:
        pending = self.store.load()
        if pending is None:
            return ReconcileResult.NOTHING_PENDING

        try:
            state = self.api.get_order_status(pending.order_id)
        except ReconciliationError as e:
            logger.warning("Status check for order %s failed, will retry: %s", pending.order_id, e)
            return ReconcileResult.UNRESOLVED

        if state.get("status") == OrderStatus.CANCELLED.value:
            logger.info("Order %s was cancelled; dropping pending marker", pending.order_id)
            self.store.clear()
            return ReconcileResult.CANCELLED

        if state.get("payment_status") not in CONFIRMED:
            logger.info(
                "Order %s payment still %s; keeping marker",
                pending.order_id, state.get("payment_status"),
            )
            return ReconcileResult.UNRESOLVED

        ok = True

        # a) purchased cart lines, one call each, keep going on failure
        for line in pending.lines_to_remove:
            try:
                self.api.remove_cart_line(pending.user_id, line.cart_line_id)
            except ReconciliationError as e:
                ok = False
                logger.error(
                    "Could not remove cart line %s (item %s) for order %s: %s",
                    line.cart_line_id, line.item_id, pending.order_id, e,
                )
                continue
            pending.removed_line_ids.append(line.cart_line_id)
            self.store.save(pending)

        # b) one batched stock decrement
        if not pending.stock_decremented:
            try:
                applied = self.api.decrease_stock(pending.order_id, pending.lines)
            except ReconciliationError as e:
                ok = False
                logger.error("Stock decrement for order %s failed: %s", pending.order_id, e)
            else:
                if not applied:
                    logger.info("Stock for order %s was already decremented", pending.order_id)
                pending.stock_decremented = True
                self.store.save(pending)

        if not ok:
            return ReconcileResult.INCOMPLETE

        # c) marker, d) success view
        self.store.clear()
        logger.info("Order %s reconciled", pending.order_id)
        if self.on_success:
            self.on_success(pending.order_id)
        return ReconcileResult.COMPLETED
