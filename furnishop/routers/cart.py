# furnishop/routers/cart.py
from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from furnishop.db import get_db
from furnishop.errors import ValidationError
from furnishop.models.cart import CartLine
from furnishop.schemas import CartAdd, CartLineOut, CartQuantity
from furnishop.services import orders as order_service
from furnishop.services.pricing import Dimensions, quote_for_item
from furnishop.utils.auth import CurrentUser, ensure_owner_or_admin, get_current_user

router = APIRouter(prefix="/api/cart", tags=["cart"])


def _cart_lines(db: Session, user_id: str) -> List[CartLine]:
    q = select(CartLine).where(CartLine.user_id == str(user_id)).order_by(CartLine.id)
    return list(db.scalars(q))


def _summary(db: Session, user_id: str) -> dict:
    lines = _cart_lines(db, user_id)
    total = Decimal("0")
    for l in lines:
        unit = l.custom_price if l.is_custom else l.item.price
        total += Decimal(str(unit)) * int(l.quantity)
    return {
        "ok": True,
        "lines": [CartLineOut.model_validate(l) for l in lines],
        "total_items": sum(l.quantity for l in lines),
        "total_sum": float(total),
    }


# ----------------------- VIEW -----------------------
@router.get("/{user_id}/items")
def cart_view(user_id: str, db: Session = Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    ensure_owner_or_admin(user, user_id)
    return _summary(db, user_id)


# ----------------------- ADD -----------------------
@router.post("/{user_id}/add")
def cart_add(
    user_id: str,
    body: CartAdd,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    ensure_owner_or_admin(user, user_id)
    item = order_service.get_item(db, body.item_id)

    if body.custom is not None:
        c = body.custom
        breakdown = quote_for_item(
            item, Dimensions.of(c.length, c.width, c.height),
            c.labor_days, c.leg_material_name, c.top_material_name,
        )
        db.add(CartLine(
            user_id=str(user_id),
            item_id=item.id,
            quantity=body.quantity,
            custom_length=breakdown.dimensions.length,
            custom_width=breakdown.dimensions.width,
            custom_height=breakdown.dimensions.height,
            legs_frame_material=breakdown.leg_material,
            tabletop_material=breakdown.top_material,
            labor_days=breakdown.labor_days,
            custom_price=breakdown.final_selling_price,
        ))
        db.commit()
        return _summary(db, user_id)

    max_qty = int(item.stock)
    if max_qty <= 0:
        raise ValidationError("item_id", f"'{item.name}' is out of stock")

    existing = db.scalars(
        select(CartLine).where(
            CartLine.user_id == str(user_id),
            CartLine.item_id == item.id,
            CartLine.custom_price.is_(None),
        )
    ).first()
    want = (existing.quantity if existing else 0) + body.quantity
    want = min(want, max_qty)   # capped at what is on hand

    if existing:
        existing.quantity = want
    else:
        db.add(CartLine(user_id=str(user_id), item_id=item.id, quantity=want))
    db.commit()
    return _summary(db, user_id)


# ----------------------- UPDATE -----------------------
@router.put("/{user_id}/items/{item_id}")
def cart_update(
    user_id: str,
    item_id: int,
    body: CartQuantity,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    ensure_owner_or_admin(user, user_id)
    lines = [l for l in _cart_lines(db, user_id) if l.item_id == item_id]
    if not lines:
        raise HTTPException(status_code=404, detail="Item not found in cart")

    for l in lines:
        if body.quantity == 0:
            db.delete(l)
        elif l.is_custom:
            l.quantity = body.quantity
        else:
            l.quantity = min(body.quantity, int(l.item.stock))
    db.commit()
    return _summary(db, user_id)


# ----------------------- REMOVE -----------------------
@router.delete("/{user_id}/items/{item_id}")
def cart_remove(
    user_id: str,
    item_id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    ensure_owner_or_admin(user, user_id)
    lines = [l for l in _cart_lines(db, user_id) if l.item_id == item_id]
    if not lines:
        raise HTTPException(status_code=404, detail="Item not found in cart")
    for l in lines:
        db.delete(l)
    db.commit()
    summary = _summary(db, user_id)
    summary["removed_item"] = item_id
    return summary


@router.delete("/{user_id}/lines/{line_id}")
def cart_remove_line(
    user_id: str,
    line_id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Remove one cart line, leaving other configurations of the same item alone."""
    ensure_owner_or_admin(user, user_id)
    line = db.get(CartLine, line_id)
    if line is None or line.user_id != str(user_id):
        raise HTTPException(status_code=404, detail="Line not found in cart")
    db.delete(line)
    db.commit()
    summary = _summary(db, user_id)
    summary["removed_line"] = line_id
    return summary
