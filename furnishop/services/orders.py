"""Checkout: turns requested lines into a priced, split, persisted order."""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from furnishop.errors import ItemNotFoundError, OrderNotFoundError, ValidationError
from furnishop.models.catalog import Item
from furnishop.models.order import Order, OrderItem
from furnishop.services import lifecycle
from furnishop.services.payment_split import PaymentSplit, split_payment
from furnishop.services.pricing import Dimensions, PriceBreakdown, quote_for_item, to_decimal
from furnishop.utils.enums import DeliveryOption, PaymentStatus, PaymentType

logger = logging.getLogger(__name__)


@dataclass
class PricedLine:
    item: Item
    quantity: int
    unit_price: Decimal
    is_custom: bool
    breakdown: Optional[PriceBreakdown] = None

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


def get_item(db: Session, item_id: int) -> Item:
    item = db.get(Item, item_id)
    if not item or not item.is_active:
        raise ItemNotFoundError(item_id)
    return item


def price_line(db: Session, line) -> PricedLine:
    """Price one requested line. Custom lines always go through the engine."""
    quantity = int(line.quantity)
    if quantity < 1:
        raise ValidationError("quantity", "must be at least 1")
    item = get_item(db, line.item_id)

    custom = getattr(line, "custom", None)
    if custom is None:
        if quantity > int(item.stock):
            raise ValidationError("quantity", f"only {item.stock} of '{item.name}' in stock")
        return PricedLine(item=item, quantity=quantity, unit_price=Decimal(str(item.price)), is_custom=False)

    breakdown = quote_for_item(
        item,
        Dimensions.of(custom.length, custom.width, custom.height),
        custom.labor_days,
        custom.leg_material_name,
        custom.top_material_name,
    )
    return PricedLine(
        item=item,
        quantity=quantity,
        unit_price=breakdown.final_selling_price,
        is_custom=True,
        breakdown=breakdown,
    )


def _parse(enum_cls, value, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValidationError(field_name, f"must be one of: {allowed}")


def create_order(
    db: Session,
    user_id: str,
    lines: Sequence,
    delivery_option,
    payment_type=PaymentType.FULL_PAYMENT,
    shipping_fee=0,
    shipping_address=None,
) -> Tuple[Order, PaymentSplit]:
    """Create an order from requested lines.

    ``lines`` items expose ``item_id``, ``quantity`` and an optional
    ``custom`` (``length``, ``width``, ``height``, ``leg_material_name``,
    ``top_material_name``, ``labor_days``). Stock is not touched here; it is
    decremented once the payment is confirmed.
    """
    if not lines:
        raise ValidationError("lines", "at least one line is required")
    delivery_option = _parse(DeliveryOption, delivery_option, "delivery_option")
    payment_type = _parse(PaymentType, payment_type, "payment_type")
    shipping_fee = to_decimal(shipping_fee, "shipping_fee")

    if delivery_option == DeliveryOption.DELIVERY:
        if not shipping_address or not getattr(shipping_address, "address_line1", None):
            raise ValidationError("shipping_address", "an address is required for delivery")
        if not getattr(shipping_address, "phone", None):
            raise ValidationError("phone", "a phone number is required for delivery")

    priced: List[PricedLine] = [price_line(db, line) for line in lines]
    split = split_payment(priced, delivery_option, shipping_fee, payment_type)
    if split.payment_type != payment_type:
        logger.info("Down payment requested without custom lines, charging in full")

    order = Order(
        user_id=str(user_id),
        delivery_option=delivery_option.value,
        shipping_fee=split.shipping_fee,
        payment_type=split.payment_type.value,
        amount=split.full_amount,
        amount_paid=Decimal("0"),
        balance=split.full_amount + split.shipping_fee,
        down_payment_amount=split.down_payment_amount,
        status=lifecycle.initial_status(priced, delivery_option).value,
        payment_status=PaymentStatus.PENDING.value,
    )
    if shipping_address is not None:
        order.full_name = getattr(shipping_address, "full_name", None)
        order.phone = getattr(shipping_address, "phone", None)
        order.address_line1 = getattr(shipping_address, "address_line1", None)
        order.city = getattr(shipping_address, "city", None)
        order.province = getattr(shipping_address, "province", None)
        order.postal_code = getattr(shipping_address, "postal_code", None)

    for p in priced:
        oi = OrderItem(
            item_id=p.item.id,
            product_name=p.item.name,
            quantity=p.quantity,
            unit_price=p.unit_price,
            line_total=p.line_total,
            is_custom=p.is_custom,
        )
        if p.is_custom:
            b = p.breakdown
            oi.custom_length = b.dimensions.length
            oi.custom_width = b.dimensions.width
            oi.custom_height = b.dimensions.height
            oi.legs_frame_material = b.leg_material
            oi.tabletop_material = b.top_material
            oi.labor_days = b.labor_days
            oi.price_breakdown = b.to_dict()
        order.items.append(oi)

    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info(
        "Order %s created for user %s: %s, %s, status '%s'",
        order.id, user_id, order.delivery_option, order.payment_type, order.status,
    )
    return order, split


def get_order(db: Session, order_id: int) -> Order:
    order = db.get(Order, order_id)
    if not order:
        raise OrderNotFoundError(order_id)
    return order


def list_orders(db: Session, status: Optional[str] = None, limit: int = 50) -> List[Order]:
    q = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
    if status and status != "all":
        q = q.where(Order.status == status)
    return list(db.scalars(q.limit(limit)))


def list_user_orders(db: Session, user_id: str) -> List[Order]:
    q = select(Order).where(Order.user_id == str(user_id)).order_by(Order.created_at.desc(), Order.id.desc())
    return list(db.scalars(q))
