"""Deposit / balance split for orders mixing stock and made-to-order lines.

Custom lines are 30% deposited; stock lines are always paid in full because
they ship (or are reserved) right away. Computed once at checkout; the order
stores the deposit and the balance it produced.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from furnishop import config
from furnishop.errors import ValidationError
from furnishop.services.pricing import to_decimal
from furnishop.utils.enums import DeliveryOption, PaymentType

CENT = Decimal("0.01")


@dataclass(frozen=True)
class PaymentSplit:
    customized_total: Decimal
    normal_total: Decimal
    down_payment_amount: Decimal
    remaining_balance: Decimal
    full_amount: Decimal
    shipping_fee: Decimal
    payment_type: PaymentType          # effective type, after the fallback
    amount_due_now: Decimal            # what the gateway charges at checkout

    @property
    def deposit_offered(self) -> bool:
        return self.customized_total > 0


def _line_total(line) -> Decimal:
    qty = int(line.quantity)
    if qty < 1:
        raise ValidationError("quantity", "must be at least 1")
    return to_decimal(line.unit_price, "unit_price") * qty


def split_payment(
    lines: Iterable,
    delivery_option=DeliveryOption.DELIVERY,
    shipping_fee=0,
    payment_type=PaymentType.FULL_PAYMENT,
    rate: Optional[Decimal] = None,
) -> PaymentSplit:
    """Split an order's value into deposit and balance.

    ``lines`` are any objects with ``is_custom``, ``unit_price`` and
    ``quantity``. A ``down_payment`` request on an order without custom
    lines silently falls back to ``full_payment``.
    """
    rate = config.DOWN_PAYMENT_RATE if rate is None else rate
    delivery_option = DeliveryOption(delivery_option)
    shipping = to_decimal(shipping_fee, "shipping_fee")
    if shipping < 0:
        raise ValidationError("shipping_fee", "must not be negative")
    if delivery_option == DeliveryOption.PICKUP and shipping > 0:
        raise ValidationError("shipping_fee", "pickup orders carry no shipping fee")

    customized_total = Decimal("0")
    normal_total = Decimal("0")
    for line in lines:
        if line.is_custom:
            customized_total += _line_total(line)
        else:
            normal_total += _line_total(line)

    # deposit rounded to centavos, balance is its exact complement
    custom_deposit = (customized_total * rate).quantize(CENT, rounding=ROUND_HALF_UP)
    remaining_balance = customized_total - custom_deposit
    down_payment_amount = custom_deposit + normal_total
    full_amount = customized_total + normal_total

    effective = PaymentType(payment_type)
    if effective == PaymentType.DOWN_PAYMENT and customized_total == 0:
        effective = PaymentType.FULL_PAYMENT

    if effective == PaymentType.DOWN_PAYMENT:
        due_now = down_payment_amount + shipping
    else:
        due_now = full_amount + shipping

    return PaymentSplit(
        customized_total=customized_total,
        normal_total=normal_total,
        down_payment_amount=down_payment_amount,
        remaining_balance=remaining_balance,
        full_amount=full_amount,
        shipping_fee=shipping,
        payment_type=effective,
        amount_due_now=due_now,
    )
