from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, ForeignKey, Integer, Numeric, Boolean, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from furnishop import config
from furnishop.db import Base

__all__ = ["Item", "MaterialOption"]


class Item(Base):
    __tablename__ = "items"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(String(2000), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    stock: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # catalog dimensions, feet
    length: Mapped[Decimal] = mapped_column(Numeric(6, 2))
    width: Mapped[Decimal] = mapped_column(Numeric(6, 2))
    height: Mapped[Decimal] = mapped_column(Numeric(6, 2))

    # === made-to-order options ===
    is_customizable: Mapped[bool] = mapped_column(Boolean, default=False)
    labor_cost_per_day: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=config.DEFAULT_LABOR_COST_PER_DAY)
    estimated_days: Mapped[int] = mapped_column(Integer, default=config.DEFAULT_ESTIMATED_DAYS)
    profit_margin: Mapped[Decimal] = mapped_column(Numeric(5, 4), default=config.DEFAULT_PROFIT_MARGIN)
    overhead_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=config.DEFAULT_OVERHEAD_COST)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    materials: Mapped[List["MaterialOption"]] = relationship(
        "MaterialOption", back_populates="item", cascade="all, delete-orphan"
    )


class MaterialOption(Base):
    """Raw lumber a customizable item can be built from, e.g. "Narra"."""

    __tablename__ = "material_options"
    __table_args__ = (UniqueConstraint("item_id", "name", name="uq_material_option_item_name"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), index=True)
    name: Mapped[str] = mapped_column(String(120))
    plank_3x3_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2))    # 3"x3"x10ft, legs and frame
    plank_2x12_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2))   # 2"x12"x10ft, tabletop

    item: Mapped["Item"] = relationship("Item", back_populates="materials")
