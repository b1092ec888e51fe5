from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from fmx_pm.api.security import is_path_allowlisted

UNAUTHORIZED_MESSAGE = "Unauthorized access"


class AuthEnforcementMiddleware(BaseHTTPMiddleware):
    """Default-deny auth enforcement for the API.

    Every non-allowlisted path needs the admin token. On success the
    `Principal` is attached to `request.state.principal` for reuse in
    FastAPI dependencies.
    """

    async def dispatch(self, request: Request, call_next):
        settings = request.app.state.settings

        # Allow CORS preflight to pass through (actual endpoints still require auth).
        if request.method.upper() == "OPTIONS":
            return await call_next(request)
        if is_path_allowlisted(request.url.path, env=settings.env):
            return await call_next(request)

        authenticator = request.app.state.authenticator
        principal = authenticator.authenticate(request.headers.get("authorization"))
        if principal is None:
            return JSONResponse({"error": UNAUTHORIZED_MESSAGE}, status_code=401)

        request.state.principal = principal
        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        response.headers.setdefault("Cross-Origin-Resource-Policy", "same-origin")
        if request.url.scheme == "https":
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000")
        # Admin data and generated exports should not be cached by intermediaries.
        if request.url.path != "/health":
            response.headers.setdefault("Cache-Control", "no-store")
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, max_bytes: int) -> None:
        super().__init__(app)
        self.max_bytes = max(1, int(max_bytes))

    async def dispatch(self, request: Request, call_next):
        cl = request.headers.get("content-length")
        if cl and cl.strip().isdigit() and int(cl) > self.max_bytes:
            return JSONResponse({"error": "Request too large"}, status_code=413)
        return await call_next(request)
