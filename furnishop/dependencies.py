"""FastAPI dependencies shared by the routers."""
from fastapi import Request

from furnishop.services.audit import AuditTrail


def get_audit_trail(request: Request) -> AuditTrail:
    """Audit trail configured on the app at startup."""
    return request.app.state.audit
