# furnishop/models/order.py
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from furnishop.db import Base
from furnishop.utils.enums import OrderStatus, PaymentStatus, PaymentType

__all__ = ["Order", "OrderItem"]


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)

    # 'delivery' | 'pickup'
    delivery_option: Mapped[str] = mapped_column(String(16))
    shipping_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)

    # 'full_payment' | 'down_payment'
    payment_type: Mapped[str] = mapped_column(String(16), default=PaymentType.FULL_PAYMENT.value)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)        # sum of lines, no shipping
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    balance: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    # deposit part of the split, frozen at checkout
    down_payment_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)

    # === ORDER STATUS ===
    status: Mapped[str] = mapped_column(String(32), default=OrderStatus.PENDING.value, index=True)
    status_changed_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    payment_status: Mapped[str] = mapped_column(String(32), default=PaymentStatus.PENDING.value, index=True)
    transaction_id: Mapped[Optional[str]] = mapped_column(String(128), unique=True, nullable=True)
    remarks: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    delivery_proof: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    delivery_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    stock_decremented: Mapped[bool] = mapped_column(Boolean, default=False)

    # contact, copied at checkout
    full_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    address_line1: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    province: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    postal_code: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan"
    )

    @property
    def total_with_shipping(self) -> Decimal:
        return Decimal(str(self.amount)) + Decimal(str(self.shipping_fee))

    @property
    def has_custom_items(self) -> bool:
        return any(i.is_custom for i in self.items)


class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), index=True)

    item_id: Mapped[int] = mapped_column(Integer)
    product_name: Mapped[str] = mapped_column(String(255))

    quantity: Mapped[int] = mapped_column(Integer, default=1)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    line_total: Mapped[Decimal] = mapped_column(Numeric(12, 2))

    # === made-to-order snapshot (never re-read from the catalog) ===
    is_custom: Mapped[bool] = mapped_column(Boolean, default=False)
    custom_length: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 2), nullable=True)
    custom_width: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 2), nullable=True)
    custom_height: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 2), nullable=True)
    legs_frame_material: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    tabletop_material: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    labor_days: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 2), nullable=True)
    price_breakdown: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    order: Mapped["Order"] = relationship("Order", back_populates="items")