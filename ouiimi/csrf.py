"""
CSRF Protection Middleware for FastAPI

Implements a signed double-submit cookie pattern.
- Tokens are "<random>.<hmac>" signed with SECRET_KEY
- State-changing requests must echo the cookie value in the X-CSRF-Token header
- Requests authenticated with a Bearer token carry no ambient credentials and are exempt
- The payment webhook is exempt (it is signature verified)
"""

import hashlib
import hmac
import logging
import secrets
from typing import Callable, Optional

from fastapi import Request
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .config import SECRET_KEY

logger = logging.getLogger(__name__)

CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"
CSRF_COOKIE_MAX_AGE = 86400

# Methods that require CSRF protection
PROTECTED_METHODS = {"POST", "PUT", "PATCH", "DELETE"}

EXEMPT_PATHS: list[str] = [
    "/api/payments/webhook",
    "/health",
    "/docs",
    "/openapi.json",
    "/csrf-token",
]


def _sign(value: str) -> str:
    return hmac.new(SECRET_KEY.encode("utf-8"), value.encode("utf-8"), hashlib.sha256).hexdigest()


def generate_csrf_token() -> str:
    """Generate a signed CSRF token"""
    value = secrets.token_urlsafe(32)
    return f"{value}.{_sign(value)}"


def verify_csrf_token(token: Optional[str]) -> bool:
    """Check that a token was issued by this server"""
    if not token or "." not in token:
        return False
    value, signature = token.rsplit(".", 1)
    return hmac.compare_digest(_sign(value), signature)


def is_path_exempt(path: str) -> bool:
    return any(path == exempt or path.startswith(exempt + "/") for exempt in EXEMPT_PATHS)


def set_csrf_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=CSRF_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=True,
        samesite="strict",
        max_age=CSRF_COOKIE_MAX_AGE,
        path="/",
    )


def _reject(request: Request, reason: str, detail: str) -> JSONResponse:
    logger.warning(f"🚫 CSRF: {reason} for {request.method} {request.url.path}")
    return JSONResponse(status_code=403, content={"error": detail})


class CSRFMiddleware(BaseHTTPMiddleware):
    """
    CSRF Protection Middleware using the double-submit cookie pattern.

    1. If no valid CSRF cookie exists, a new one is set on the response
    2. For cookie-authenticated POST/PUT/PATCH/DELETE requests the
       X-CSRF-Token header must be present, correctly signed and equal to the cookie
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        csrf_cookie = request.cookies.get(CSRF_COOKIE_NAME)
        has_bearer = request.headers.get("authorization", "").lower().startswith("bearer ")

        needs_validation = (
            request.method in PROTECTED_METHODS
            and not has_bearer
            and not is_path_exempt(request.url.path)
        )

        if needs_validation:
            csrf_header = request.headers.get(CSRF_HEADER_NAME)

            if not csrf_cookie:
                return _reject(
                    request, "missing cookie", "CSRF token missing. Please refresh the page and try again."
                )
            if not csrf_header:
                return _reject(
                    request,
                    "missing header",
                    "CSRF token header missing. Please refresh the page and try again.",
                )
            if not verify_csrf_token(csrf_header) or not secrets.compare_digest(
                csrf_cookie, csrf_header
            ):
                return _reject(
                    request, "token mismatch", "CSRF token invalid. Please refresh the page and try again."
                )

        response = await call_next(request)

        if not verify_csrf_token(csrf_cookie):
            set_csrf_cookie(response, generate_csrf_token())

        return response
