"""Audit trail for order transitions.

Emission is best-effort: a sink that raises is logged and skipped, and the
transition that produced the event stands.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from furnishop.models.order_status_log import OrderStatusLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditEvent:
    order_id: int
    from_status: str
    to_status: str
    actor: str
    timestamp: datetime = field(default_factory=datetime.utcnow)
    remarks: Optional[str] = None
    field: str = "status"   # or "payment_status"


class DbAuditSink:
    """Writes ``OrderStatusLog`` rows in a session of its own."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def emit(self, event: AuditEvent):
        db = self.session_factory()
        try:
            db.add(OrderStatusLog(
                order_id=event.order_id,
                field=event.field,
                old_status=event.from_status,
                new_status=event.to_status,
                user=event.actor,
                note=event.remarks,
                created_at=event.timestamp,
            ))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


class TelegramAuditSink:
    def __init__(self, notifier):
        self.notifier = notifier

    def emit(self, event: AuditEvent):
        self.notifier.notify_status_changed(
            order_id=event.order_id,
            field=event.field,
            old=event.from_status,
            new=event.to_status,
            actor=event.actor,
            remarks=event.remarks,
        )


class AuditTrail:
    """Fans an event out to every sink, swallowing sink failures."""

    def __init__(self, sinks: Iterable = ()):
        self.sinks: List = list(sinks)

    def emit(self, event: AuditEvent):
        for sink in self.sinks:
            try:
                sink.emit(event)
            except Exception:
                logger.exception(
                    "Audit sink %s failed for order %s (%s -> %s)",
                    type(sink).__name__, event.order_id, event.from_status, event.to_status,
                )
