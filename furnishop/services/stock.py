"""Stock decrement, run once per paid order by the reconciliation step.

Never called at checkout: an abandoned payment must not hold inventory.
"""
import logging
from collections import Counter
from typing import Iterable, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from furnishop.errors import InvalidTransitionError, ItemNotFoundError, OrderNotFoundError, ValidationError
from furnishop.models.catalog import Item
from furnishop.models.order import Order
from furnishop.models.stock_audit import StockAudit
from furnishop.utils.enums import PaymentStatus

logger = logging.getLogger(__name__)

# the deposit or the full amount has been received
STOCK_RELEASING_PAYMENTS = {PaymentStatus.DOWNPAYMENT_RECEIVED.value, PaymentStatus.FULLY_PAID.value}


def _units_per_item(entries) -> Counter:
    units = Counter()
    for item_id, qty in entries:
        units[int(item_id)] += int(qty)
    return units


def _check_matches_order(order: Order, entries):
    if order.payment_status not in STOCK_RELEASING_PAYMENTS:
        raise InvalidTransitionError(
            order.id, order.payment_status, "stock decrement", "payment has not been confirmed"
        )
    ordered = _units_per_item((i.item_id, i.quantity) for i in order.items)
    if _units_per_item(entries) != ordered:
        raise ValidationError("items", f"must list exactly the items and quantities of order #{order.id}")


def decrease_stock(
    db: Session,
    entries: Iterable[Tuple[int, int]],
    order_id: Optional[int] = None,
    user: str = "system",
) -> bool:
    """Apply a batch of ``(item_id, quantity)`` decrements in one transaction.

    With ``order_id`` the order must be paid and the batch must match its
    lines; it is applied at most once per order, a replay returns ``False``
    and changes nothing.
    """
    entries = [(int(item_id), int(qty)) for item_id, qty in entries]
    for _, qty in entries:
        if qty < 1:
            raise ValidationError("quantity", "must be at least 1")

    if order_id is not None:
        order = db.get(Order, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if order.stock_decremented:
            logger.info("Stock for order %s already decremented, skipping", order_id)
            return False
        _check_matches_order(order, entries)
        claimed = db.execute(
            update(Order)
            .where(Order.id == order_id, Order.stock_decremented.is_(False))
            .values(stock_decremented=True)
            .execution_options(synchronize_session=False)
        ).rowcount
        if claimed != 1:
            db.rollback()
            logger.info("Stock for order %s already decremented, skipping", order_id)
            return False

    try:
        for item_id, qty in entries:
            item = db.scalars(select(Item).where(Item.id == item_id).with_for_update()).first()
            if item is None:
                raise ItemNotFoundError(item_id)
            old = int(item.stock)
            new = old - qty
            if new < 0:
                logger.warning("Item %s stock goes negative (%s -> %s)", item_id, old, new)
            item.stock = new
            db.add(StockAudit(
                item_id=item_id,
                order_id=order_id,
                change_type="DECREASE",
                delta_units=qty,
                old_stock=old,
                new_stock=new,
                note=f"order #{order_id}" if order_id is not None else None,
                user=user,
            ))
        db.commit()
    except Exception:
        db.rollback()
        raise
    return True
