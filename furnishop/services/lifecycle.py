"""Order lifecycle: the only code allowed to change ``status`` and
``payment_status`` on an order.

Each change is a conditional UPDATE keyed on the status it was validated
against, so of two concurrent requests leaving the same state only one
commits; the other gets ``InvalidTransitionError``. Evidence (remarks,
proof photo) is checked before anything is written.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from furnishop.errors import (
    InvalidTransitionError,
    OrderNotFoundError,
    ProofRequiredError,
    RemarksRequiredError,
)
from furnishop.models.order import Order
from furnishop.services.audit import AuditEvent, AuditTrail
from furnishop.utils.enums import (
    DeliveryOption,
    OrderStatus,
    PaymentContext,
    PaymentStatus,
    PaymentType,
)

logger = logging.getLogger(__name__)

S = OrderStatus
P = PaymentStatus

# --------- ALLOWED TRANSITIONS ----------
TRANSITIONS = {
    S.PENDING: {S.ON_PROCESS, S.CANCELLED},
    S.ON_PROCESS: {S.READY_FOR_PICKUP, S.DELIVERED, S.PICKED_UP, S.REQUESTING_REFUND, S.CANCELLED},
    S.READY_FOR_PICKUP: {S.PICKED_UP, S.REQUESTING_REFUND},
    S.REQUESTING_REFUND: {S.REFUNDED},
    S.DELIVERED: set(),
    S.PICKED_UP: set(),
    S.REFUNDED: set(),
    S.CANCELLED: set(),
}

TERMINAL_STATES = {S.DELIVERED, S.PICKED_UP, S.REFUNDED, S.CANCELLED}
REMARKS_REQUIRED = {S.CANCELLED, S.REFUNDED}

# money has reached the shop
PAID_STATUSES = {P.DOWNPAYMENT_RECEIVED, P.PENDING_FULL_PAYMENT, P.FULLY_PAID}


def initial_status(lines: Iterable, delivery_option) -> OrderStatus:
    """Entry state for a new order: custom work starts immediately."""
    if any(line.is_custom for line in lines):
        return S.ON_PROCESS
    if DeliveryOption(delivery_option) == DeliveryOption.PICKUP:
        return S.READY_FOR_PICKUP
    return S.ON_PROCESS


def can_transition(from_status, to_status) -> bool:
    try:
        src, dst = S(from_status), S(to_status)
    except ValueError:
        return False
    return dst in TRANSITIONS.get(src, set())


def allowed_next(from_status) -> set:
    return set(TRANSITIONS.get(S(from_status), set()))


def _get_order(db: Session, order_id: int) -> Order:
    order = db.get(Order, order_id)
    if not order:
        raise OrderNotFoundError(order_id)
    return order


def _emit(audit: Optional[AuditTrail], event: AuditEvent):
    if audit is not None:
        audit.emit(event)


def _commit_if_unchanged(db: Session, order: Order, guard, values: dict, requested: str):
    """Write ``values`` only if ``guard`` still holds for the row."""
    result = db.execute(
        update(Order)
        .where(Order.id == order.id, *guard)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        db.refresh(order)
        raise InvalidTransitionError(
            order.id, order.status, requested, "the order was changed by another request"
        )
    db.commit()
    db.refresh(order)


def _payment_status_on_entry(requested: OrderStatus, current_payment: str) -> str:
    if requested == S.REQUESTING_REFUND and P(current_payment) in PAID_STATUSES:
        return P.REFUND_REQUESTED.value
    if requested == S.REFUNDED:
        return P.REFUNDED.value
    return current_payment


# ---------- STATUS TRANSITION ----------
def transition(
    db: Session,
    order_id: int,
    requested_status,
    actor: str = "system",
    remarks: Optional[str] = None,
    proof_ref: Optional[str] = None,
    audit: Optional[AuditTrail] = None,
    expect_payment_status: Optional[str] = None,
) -> Order:
    order = _get_order(db, order_id)
    current = order.status

    try:
        requested = S(requested_status)
    except ValueError:
        raise InvalidTransitionError(order.id, current, str(requested_status), "unknown status")

    if not can_transition(current, requested):
        raise InvalidTransitionError(order.id, current, requested.value)

    remarks = (remarks or "").strip()
    if requested in REMARKS_REQUIRED and not remarks:
        raise RemarksRequiredError(requested.value)

    if (
        requested == S.DELIVERED
        and order.delivery_option == DeliveryOption.DELIVERY.value
        and not proof_ref
    ):
        raise ProofRequiredError(order.id)

    now = datetime.utcnow()
    values = {"status": requested.value, "status_changed_at": now}
    if remarks:
        values["remarks"] = remarks
    if proof_ref:
        values["delivery_proof"] = proof_ref
    if requested in (S.DELIVERED, S.PICKED_UP):
        values["delivery_date"] = now

    old_payment = order.payment_status
    new_payment = _payment_status_on_entry(requested, old_payment)
    if new_payment != old_payment:
        values["payment_status"] = new_payment

    guard = [Order.status == current]
    if expect_payment_status is not None:
        guard.append(Order.payment_status == expect_payment_status)
    _commit_if_unchanged(db, order, guard, values, requested.value)

    logger.info("Order %s: %s -> %s by %s", order.id, current, requested.value, actor)
    _emit(audit, AuditEvent(
        order_id=order.id, from_status=current, to_status=requested.value,
        actor=actor, timestamp=now, remarks=remarks or None,
    ))
    if new_payment != old_payment:
        _emit(audit, AuditEvent(
            order_id=order.id, from_status=old_payment, to_status=new_payment,
            actor=actor, timestamp=now, field="payment_status",
        ))
    return order


def cancel_unpaid(
    db: Session,
    order_id: int,
    actor: str,
    remarks: Optional[str],
    audit: Optional[AuditTrail] = None,
) -> Order:
    """Buyer cancellation. Paid orders go through a refund request instead."""
    order = _get_order(db, order_id)
    if order.payment_status != P.PENDING.value:
        raise InvalidTransitionError(
            order.id, order.status, S.CANCELLED.value,
            f"payment is '{order.payment_status}', request a refund instead",
        )
    return transition(
        db, order_id, S.CANCELLED, actor=actor, remarks=remarks, audit=audit,
        expect_payment_status=P.PENDING.value,
    )


# ---------- PAYMENT CONFIRMATION ----------
def _update_payment(
    db: Session,
    order: Order,
    target: PaymentStatus,
    values: dict,
    actor: str,
    audit: Optional[AuditTrail],
) -> Order:
    old_payment = order.payment_status
    values = {"payment_status": target.value, **values}
    _commit_if_unchanged(db, order, [Order.payment_status == old_payment, Order.status == order.status], values, target.value)
    logger.info("Order %s payment: %s -> %s by %s", order.id, old_payment, target.value, actor)
    _emit(audit, AuditEvent(
        order_id=order.id, from_status=old_payment, to_status=target.value,
        actor=actor, field="payment_status",
    ))
    return order


def confirm_payment(
    db: Session,
    order_id: int,
    context=PaymentContext.NEW_ORDER,
    transaction_id: Optional[str] = None,
    actor: str = "gateway",
    audit: Optional[AuditTrail] = None,
) -> Order:
    """Record a gateway confirmation.

    ``new_order`` settles the checkout charge (deposit or full amount),
    ``completion`` settles the remaining balance. Replays are no-ops.
    """
    order = _get_order(db, order_id)
    context = PaymentContext(context)

    if transaction_id and order.transaction_id == transaction_id:
        logger.info("Order %s: transaction %s already recorded", order.id, transaction_id)
        return order

    if S(order.status) in (S.CANCELLED, S.REFUNDED):
        raise InvalidTransitionError(
            order.id, order.payment_status, "payment confirmation", f"order is '{order.status}'"
        )

    current = P(order.payment_status)
    total = order.total_with_shipping

    if context == PaymentContext.NEW_ORDER:
        if current in PAID_STATUSES:
            return order
        if current != P.PENDING:
            raise InvalidTransitionError(order.id, current.value, "checkout payment confirmation")
        if order.payment_type == PaymentType.DOWN_PAYMENT.value:
            target = P.DOWNPAYMENT_RECEIVED
            paid = Decimal(str(order.down_payment_amount)) + Decimal(str(order.shipping_fee))
        else:
            target = P.FULLY_PAID
            paid = total
    else:
        if current == P.FULLY_PAID:
            return order
        if current not in (P.DOWNPAYMENT_RECEIVED, P.PENDING_FULL_PAYMENT):
            raise InvalidTransitionError(order.id, current.value, P.FULLY_PAID.value)
        target = P.FULLY_PAID
        paid = total

    values = {"amount_paid": paid, "balance": total - paid}
    if transaction_id:
        values["transaction_id"] = transaction_id
    return _update_payment(db, order, target, values, actor, audit)


def begin_balance_payment(
    db: Session,
    order_id: int,
    actor: str,
    audit: Optional[AuditTrail] = None,
) -> Tuple[Order, Decimal]:
    """Open the balance checkout for a deposited order. Returns the amount due."""
    order = _get_order(db, order_id)
    current = P(order.payment_status)
    balance = Decimal(str(order.balance))

    if current == P.PENDING_FULL_PAYMENT:
        return order, balance
    if S(order.status) in (S.CANCELLED, S.REFUNDED, S.REQUESTING_REFUND):
        raise InvalidTransitionError(
            order.id, current.value, P.PENDING_FULL_PAYMENT.value, f"order is '{order.status}'"
        )
    if current != P.DOWNPAYMENT_RECEIVED or balance <= 0:
        raise InvalidTransitionError(
            order.id, current.value, P.PENDING_FULL_PAYMENT.value, "no remaining balance to be paid"
        )
    _update_payment(db, order, P.PENDING_FULL_PAYMENT, {}, actor, audit)
    return order, balance
