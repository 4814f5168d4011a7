# furnishop/routers/payments.py
import hmac
import logging

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from furnishop import config
from furnishop.db import get_db
from furnishop.dependencies import get_audit_trail
from furnishop.errors import PermissionDeniedError, ValidationError
from furnishop.schemas import OrderStatusOut, PaymentConfirmation
from furnishop.services import lifecycle
from furnishop.services.audit import AuditTrail
from furnishop.utils.enums import PaymentContext

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/payments", tags=["payments"])


# Gateway webhook: the gateway's only way into the order state
@router.post("/confirm", response_model=OrderStatusOut)
def confirm(
    body: PaymentConfirmation,
    x_webhook_secret: str = Header(""),
    db: Session = Depends(get_db),
    audit: AuditTrail = Depends(get_audit_trail),
):
    if not hmac.compare_digest(x_webhook_secret, config.PAYMENT_WEBHOOK_SECRET):
        logger.warning("Rejected payment confirmation for order %s: bad secret", body.order_id)
        raise PermissionDeniedError("Invalid webhook secret")

    try:
        context = PaymentContext(body.payment_context)
    except ValueError:
        raise ValidationError("payment_context", "must be 'new_order' or 'completion'")

    order = lifecycle.confirm_payment(
        db, body.order_id, context, transaction_id=body.transaction_id, actor="gateway", audit=audit
    )
    return OrderStatusOut(order_id=order.id, status=order.status, payment_status=order.payment_status)
