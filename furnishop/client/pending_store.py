"""Locally persisted "payment in flight" marker.

Written before the buyer leaves for the payment gateway and removed only
once every post-payment step has succeeded. Completed steps are recorded
so a retry does not repeat them.
"""
import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import List, Optional

from furnishop import config

logger = logging.getLogger(__name__)


@dataclass
class PurchasedLine:
    item_id: int
    quantity: int
    # None when the line was bought without going through the cart
    cart_line_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict) -> "PurchasedLine":
        line_id = data.get("cart_line_id")
        return cls(int(data["item_id"]), int(data["quantity"]), int(line_id) if line_id is not None else None)


@dataclass
class PendingOrder:
    order_id: int
    user_id: str
    lines: List[PurchasedLine] = field(default_factory=list)
    removed_line_ids: List[int] = field(default_factory=list)
    stock_decremented: bool = False

    @property
    def lines_to_remove(self) -> List[PurchasedLine]:
        done = set(self.removed_line_ids)
        return [l for l in self.lines if l.cart_line_id is not None and l.cart_line_id not in done]

    @classmethod
    def from_dict(cls, data: dict) -> "PendingOrder":
        return cls(
            order_id=int(data["order_id"]),
            user_id=str(data["user_id"]),
            lines=[PurchasedLine.from_dict(l) for l in data.get("lines", [])],
            removed_line_ids=[int(i) for i in data.get("removed_line_ids", [])],
            stock_decremented=bool(data.get("stock_decremented", False)),
        )


class PendingOrderStore:
    def __init__(self, path=config.CLIENT_STATE_PATH):
        self.path = Path(path)

    def load(self) -> Optional[PendingOrder]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            # unreadable marker: keep the file for inspection, act as if absent
            logger.error("Cannot read pending order marker %s: %s", self.path, e)
            return None
        return PendingOrder.from_dict(data)

    def save(self, pending: PendingOrder):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(asdict(pending)), encoding="utf-8")
        os.replace(tmp, self.path)

    def clear(self):
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
