import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from furnishop import config
from furnishop.db import Base, SessionLocal, engine

# 1) Import every model before create_all() so SQLAlchemy knows the tables
import furnishop.models  # noqa: F401

from sqlalchemy.orm import configure_mappers
configure_mappers()

# 2) Create tables
Base.metadata.create_all(bind=engine)

from furnishop.errors import (
    InvalidTransitionError,
    ItemNotFoundError,
    OrderNotFoundError,
    PermissionDeniedError,
    ProofRequiredError,
    RemarksRequiredError,
    ValidationError,
)
from furnishop.middleware.rbac import RBACMiddleware
from furnishop.services.audit import AuditTrail, DbAuditSink, TelegramAuditSink
from furnishop.telegram.telegram_notify import notifier

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ==== FastAPI app ====
app = FastAPI(title=config.APP_NAME)

app.add_middleware(RBACMiddleware)

# Audit trail: status log table + staff Telegram alerts
audit_sinks = [DbAuditSink(SessionLocal)]
if notifier.enabled:
    audit_sinks.append(TelegramAuditSink(notifier))
app.state.audit = AuditTrail(audit_sinks)


# ==== Error mapping ====
def _error(status_code: int, error: str, error_type: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "error_type": error_type, "details": details},
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return _error(422, exc.message, "validation", {"field": exc.field})


@app.exception_handler(RemarksRequiredError)
async def remarks_required_handler(request: Request, exc: RemarksRequiredError):
    return _error(422, str(exc), "remarks_required", {"field": exc.field, "requested_status": exc.requested})


@app.exception_handler(ProofRequiredError)
async def proof_required_handler(request: Request, exc: ProofRequiredError):
    return _error(422, str(exc), "proof_required", {"field": exc.field})


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
    return _error(409, str(exc), "invalid_transition", {
        "current_status": exc.current,
        "requested_status": exc.requested,
    })


@app.exception_handler(OrderNotFoundError)
@app.exception_handler(ItemNotFoundError)
async def not_found_handler(request: Request, exc: Exception):
    return _error(404, str(exc), "not_found")


@app.exception_handler(PermissionDeniedError)
async def permission_denied_handler(request: Request, exc: PermissionDeniedError):
    return _error(403, str(exc) or "Access denied", "forbidden")


# ==== Routers ====
from furnishop.routers import items, orders, admin_orders, cart, payments
app.include_router(items.router)
app.include_router(orders.router)
app.include_router(admin_orders.router)
app.include_router(cart.router)
app.include_router(payments.router)


# ==== Debug route ====
@app.get("/__routes")
def __routes():
    return [getattr(r, "path", str(r)) for r in app.routes]
