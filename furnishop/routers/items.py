# furnishop/routers/items.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from furnishop.db import get_db
from furnishop.errors import PermissionDeniedError
from furnishop.schemas import ItemOut, PriceBreakdownOut, PriceRequest, StockDecrease
from furnishop.services import orders as order_service
from furnishop.services.pricing import Dimensions, quote_for_item
from furnishop.services.stock import decrease_stock
from furnishop.utils.auth import CurrentUser, ensure_owner_or_admin, get_current_user

router = APIRouter(prefix="/api/items", tags=["items"])


@router.get("/{item_id}", response_model=ItemOut)
def item_detail(item_id: int, db: Session = Depends(get_db)):
    return order_service.get_item(db, item_id)


# ---------- CUSTOM PRICE ----------
@router.post("/{item_id}/calculate-price", response_model=PriceBreakdownOut)
def calculate_price(item_id: int, body: PriceRequest, db: Session = Depends(get_db)):
    item = order_service.get_item(db, item_id)
    d = body.dimensions
    breakdown = quote_for_item(
        item,
        Dimensions.of(d.length, d.width, d.height),
        body.labor_days,
        body.leg_material_name,
        body.top_material_name,
    )
    return PriceBreakdownOut.model_validate(breakdown)


# ---------- STOCK ----------
@router.post("/decrease-stock")
def stock_decrease(
    body: StockDecrease,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    if body.order_id is None:
        if not user.is_admin:
            raise PermissionDeniedError("Only admins may adjust stock without an order")
    else:
        ensure_owner_or_admin(user, order_service.get_order(db, body.order_id).user_id)

    applied = decrease_stock(
        db,
        [(e.item_id, e.quantity) for e in body.items],
        order_id=body.order_id,
        user=user.actor,
    )
    return {"ok": True, "applied": applied}
