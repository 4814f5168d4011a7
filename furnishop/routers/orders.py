# furnishop/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from furnishop.db import get_db
from furnishop.dependencies import get_audit_trail
from furnishop.schemas import (
    BalanceCheckoutOut,
    OrderCreate,
    OrderCreated,
    OrderOut,
    OrderStatusOut,
    PaymentSplitOut,
    RemarksIn,
)
from furnishop.services import lifecycle
from furnishop.services import orders as order_service
from furnishop.services.audit import AuditTrail
from furnishop.services.payment_split import PaymentSplit
from furnishop.utils.auth import CurrentUser, ensure_owner_or_admin, get_current_user
from furnishop.utils.enums import OrderStatus

router = APIRouter(prefix="/api", tags=["orders"])


def split_out(split: PaymentSplit) -> PaymentSplitOut:
    return PaymentSplitOut(
        customized_total=split.customized_total,
        normal_total=split.normal_total,
        down_payment_amount=split.down_payment_amount,
        remaining_balance=split.remaining_balance,
        full_amount=split.full_amount,
        shipping_fee=split.shipping_fee,
        payment_type=split.payment_type.value,
        amount_due_now=split.amount_due_now,
    )


def _owned_order(db: Session, order_id: int, user: CurrentUser):
    order = order_service.get_order(db, order_id)
    ensure_owner_or_admin(user, order.user_id)
    return order


# ---------- CHECKOUT ----------
@router.post("/orders", response_model=OrderCreated, status_code=201)
def create_order(
    body: OrderCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    order, split = order_service.create_order(
        db,
        user_id=user.id,
        lines=body.lines,
        delivery_option=body.delivery_option,
        payment_type=body.payment_type,
        shipping_fee=body.shipping_fee,
        shipping_address=body.shipping_address,
    )
    return OrderCreated(
        order=OrderOut.model_validate(order),
        split=split_out(split),
        amount_due=split.amount_due_now,
    )


# ---------- STATUS (polled by the app after the gateway) ----------
@router.get("/orders/{order_id}/status", response_model=OrderStatusOut)
def order_status(
    order_id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    order = _owned_order(db, order_id, user)
    return OrderStatusOut(order_id=order.id, status=order.status, payment_status=order.payment_status)


@router.get("/orders/{order_id}", response_model=OrderOut)
def order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return _owned_order(db, order_id, user)


@router.get("/user/orders", response_model=List[OrderOut])
def user_orders(db: Session = Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    return order_service.list_user_orders(db, user.id)


# ---------- BUYER ACTIONS ----------
@router.put("/orders/{order_id}/refund-request", response_model=OrderOut)
def refund_request(
    order_id: int,
    body: RemarksIn,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    audit: AuditTrail = Depends(get_audit_trail),
):
    _owned_order(db, order_id, user)
    remarks = (body.remarks or "").strip() or "Customer requested refund"
    return lifecycle.transition(
        db, order_id, OrderStatus.REQUESTING_REFUND, actor=user.actor, remarks=remarks, audit=audit
    )


@router.put("/orders/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: int,
    body: RemarksIn,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    audit: AuditTrail = Depends(get_audit_trail),
):
    _owned_order(db, order_id, user)
    return lifecycle.cancel_unpaid(db, order_id, actor=user.actor, remarks=body.remarks, audit=audit)


@router.post("/orders/{order_id}/complete-payment", response_model=BalanceCheckoutOut)
def complete_payment(
    order_id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    audit: AuditTrail = Depends(get_audit_trail),
):
    _owned_order(db, order_id, user)
    order, amount_due = lifecycle.begin_balance_payment(db, order_id, actor=user.actor, audit=audit)
    return BalanceCheckoutOut(order_id=order.id, payment_status=order.payment_status, amount_due=amount_due)
