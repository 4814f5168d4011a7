from typing import Optional
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from furnishop.db import Base

__all__ = ["CartLine"]


class CartLine(Base):
    __tablename__ = "cart_lines"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), index=True)
    quantity: Mapped[int] = mapped_column(Integer, default=1)

    # set only for made-to-order lines
    custom_length: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 2), nullable=True)
    custom_width: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 2), nullable=True)
    custom_height: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 2), nullable=True)
    legs_frame_material: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    tabletop_material: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    labor_days: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 2), nullable=True)
    custom_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    item = relationship("Item")

    @property
    def is_custom(self) -> bool:
        return self.custom_price is not None
