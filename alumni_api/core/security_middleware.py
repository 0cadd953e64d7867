"""Security headers middleware."""
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from alumni_api.core import config


BASE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=(), payment=(), usb=()",
}


def build_csp(debug: bool, supabase_url: str = "") -> str:
    """Content Security Policy for API responses and served uploads."""
    img_src = "'self' data: https: http:" if debug else "'self' data: https:"
    connect_src = "'self' http://localhost:*" if debug else "'self'"
    if supabase_url:
        connect_src = f"{connect_src} {supabase_url}"
    return (
        "default-src 'self'; "
        f"img-src {img_src}; "
        "style-src 'self' 'unsafe-inline'; "
        f"connect-src {connect_src}; "
        "frame-ancestors 'none';"
    )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        settings = config.settings
        debug = bool(settings and settings.DEBUG)

        for name, value in BASE_HEADERS.items():
            response.headers[name] = value
        response.headers["Content-Security-Policy"] = build_csp(
            debug, (settings.SUPABASE_URL or "") if settings else ""
        )

        # HSTS only over HTTPS
        if not debug and request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        # Hide technology stack
        for header in ("server", "x-powered-by"):
            if header in response.headers:
                del response.headers[header]

        return response
