from enum import Enum

# Values are persisted and matched literally by clients. Do not reword.


class UserRole(str, Enum):
    ADMIN = "admin"
    BUYER = "buyer"


class OrderStatus(str, Enum):
    PENDING = "Pending"
    ON_PROCESS = "On Process"
    READY_FOR_PICKUP = "Ready for Pickup"
    DELIVERED = "Delivered"
    PICKED_UP = "Picked Up"
    REQUESTING_REFUND = "Requesting for Refund"
    REFUNDED = "Refunded"
    CANCELLED = "Cancelled"


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    DOWNPAYMENT_RECEIVED = "Downpayment Received"
    PENDING_FULL_PAYMENT = "Pending Full Payment"
    FULLY_PAID = "Fully Paid"
    REFUND_REQUESTED = "Refund Requested"
    REFUNDED = "Refunded"


class PaymentType(str, Enum):
    FULL_PAYMENT = "full_payment"
    DOWN_PAYMENT = "down_payment"


class DeliveryOption(str, Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


class PaymentContext(str, Enum):
    NEW_ORDER = "new_order"
    COMPLETION = "completion"
