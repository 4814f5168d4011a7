"""Domain exceptions.

Raised by the services; the API layer maps them to HTTP responses in
``furnishop.main``. None of them is raised after state has been mutated.
"""

from typing import Optional


class ShopError(Exception):
    """Base class for every business-rule failure."""


class ValidationError(ShopError):
    """Bad pricing or order input. The caller corrects the field and retries."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class InvalidTransitionError(ShopError):
    """The requested status is not reachable from the current one."""

    def __init__(self, order_id: Optional[int], current: str, requested: str, reason: Optional[str] = None):
        self.order_id = order_id
        self.current = current
        self.requested = requested
        self.reason = reason
        msg = f"Order {order_id} cannot move from '{current}' to '{requested}'"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class RemarksRequiredError(ShopError):
    """Cancelling or refunding needs a written remark."""

    field = "remarks"

    def __init__(self, requested: str):
        self.requested = requested
        super().__init__(f"Remarks are required to set status '{requested}'")


class ProofRequiredError(ShopError):
    """A delivery order cannot be marked Delivered without a proof photo."""

    field = "proof_ref"

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"A delivery proof photo is required to mark order {order_id} as delivered")


class ReconciliationError(ShopError):
    """Transient failure while talking to the order API. Always retried."""


class OrderNotFoundError(ShopError):
    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


class ItemNotFoundError(ShopError):
    def __init__(self, item_id):
        self.item_id = item_id
        super().__init__(f"Item {item_id} not found")


class PermissionDeniedError(ShopError):
    pass
