# furnishop/routers/admin_orders.py
import shutil
import uuid
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from furnishop import config
from furnishop.db import get_db
from furnishop.dependencies import get_audit_trail
from furnishop.errors import InvalidTransitionError, ValidationError
from furnishop.schemas import OrderOut, TransitionRequest
from furnishop.services import lifecycle
from furnishop.services import orders as order_service
from furnishop.services.audit import AuditTrail
from furnishop.utils.auth import CurrentUser, get_current_user
from furnishop.utils.enums import DeliveryOption, OrderStatus

router = APIRouter(prefix="/api/admin/orders", tags=["admin-orders"])

PROOF_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".heic"}


def _save_proof(image: UploadFile) -> str:
    """Store the photo under a random name, return the stored reference."""
    ext = Path(image.filename or "").suffix.lower()
    if ext not in PROOF_EXTENSIONS:
        raise ValidationError("delivery_proof", f"unsupported image type '{ext or image.filename}'")
    upload_dir = Path(config.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    filename = f"{uuid.uuid4().hex}{ext}"
    with open(upload_dir / filename, "wb") as buffer:
        shutil.copyfileobj(image.file, buffer)
    return filename


# ---------- LIST ----------
@router.get("", response_model=List[OrderOut])
def list_orders(
    status: str = Query("all"),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return order_service.list_orders(db, status=status, limit=limit)


# ---------- STATUS CHANGE ----------
@router.put("/{order_id}/status", response_model=OrderOut)
def change_status(
    order_id: int,
    body: TransitionRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    audit: AuditTrail = Depends(get_audit_trail),
):
    return lifecycle.transition(
        db,
        order_id,
        body.status,
        actor=user.actor,
        remarks=body.remarks,
        proof_ref=body.proof_ref,
        audit=audit,
    )


# ---------- DELIVERY PROOF ----------
@router.post("/{order_id}/delivery-proof", response_model=OrderOut)
def delivery_proof(
    order_id: int,
    delivery_proof: UploadFile = File(...),
    remarks: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    audit: AuditTrail = Depends(get_audit_trail),
):
    order = order_service.get_order(db, order_id)
    target = (
        OrderStatus.DELIVERED
        if order.delivery_option == DeliveryOption.DELIVERY.value
        else OrderStatus.PICKED_UP
    )
    # reject before writing the file
    if not lifecycle.can_transition(order.status, target):
        raise InvalidTransitionError(order.id, order.status, target.value)

    proof_ref = _save_proof(delivery_proof)
    return lifecycle.transition(
        db, order_id, target, actor=user.actor, remarks=remarks, proof_ref=proof_ref, audit=audit
    )
