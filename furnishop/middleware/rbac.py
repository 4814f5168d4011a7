from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
from fastapi import Request
from furnishop.utils.enums import UserRole


ACCESS_MATRIX = {
    UserRole.ADMIN.value: ["*"],  # full access
    UserRole.BUYER.value: [],
}


class RBACMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        # only the admin section is gated here
        if path.startswith("/api/admin"):
            role = (request.headers.get("x-user-role") or "").strip().lower()

            if not role:
                return JSONResponse({"error": "Authentication required", "error_type": "auth"}, status_code=401)

            allowed_paths = ACCESS_MATRIX.get(role, [])
            if "*" in allowed_paths or any(path.startswith(p) for p in allowed_paths):
                return await call_next(request)

            return JSONResponse({"error": "Access denied", "error_type": "forbidden"}, status_code=403)

        return await call_next(request)
