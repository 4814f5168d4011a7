# furnishop/models/stock_audit.py
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from furnishop.db import Base

__all__ = ["StockAudit"]


class StockAudit(Base):
    __tablename__ = "stock_audit"

    id = Column(Integer, primary_key=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True, index=True)

    # DECREASE | INCREASE | SET
    change_type = Column(String(16), nullable=False)

    delta_units = Column(Integer, nullable=False)
    old_stock   = Column(Integer, nullable=False)
    new_stock   = Column(Integer, nullable=False)
    note        = Column(String(500), nullable=True)

    user       = Column(String(64), nullable=False, default="system")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    item = relationship("Item")
