from fastapi import Request, FastAPI
from starlette.middleware.base import BaseHTTPMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
import re
import html

# --- Rate Limiting ---
limiter = Limiter(key_func=get_remote_address)

def setup_rate_limiting(app: FastAPI, enabled: bool = True):
    limiter.enabled = enabled
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# --- Security Headers Middleware ---
SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    # product images are served from the CDN, not from this API
    "Content-Security-Policy": "default-src 'self'; img-src 'self' data: https:; object-src 'none'; frame-ancestors 'none';",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers[header] = value
        return response

# --- Input Sanitization ---
def sanitize_input(text):
    """
    Strip surrounding whitespace and HTML-escape free text.
    Non-string values (None, numbers) pass through untouched.
    """
    if not isinstance(text, str):
        return text
    return html.escape(text.strip())

def validate_password_strength(password: str, min_length: int = 6) -> bool:
    """
    A password must be at least ``min_length`` characters and contain
    at least one letter and one digit.
    """
    if len(password) < min_length:
        return False
    if not re.search(r"[A-Za-z]", password):
        return False
    if not re.search(r"\d", password):
        return False
    return True
