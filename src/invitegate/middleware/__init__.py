"""HTTP middleware and exception handler registration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from invitegate.config import Settings
from invitegate.middleware.error_handler import setup_error_handlers
from invitegate.middleware.logging import setup_logging
from invitegate.middleware.rate_limit import RateLimitMiddleware
from invitegate.middleware.request_context import REQUEST_ID_HEADER, RequestContextMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Wire logging, error envelopes, rate limiting, request context and CORS.

    Starlette runs middleware last-added-first, so CORS wraps everything
    (429s included) and the request id is bound before rate limiting runs.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        redeem_requests_per_window=settings.rate_limit_redeem_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestContextMiddleware)
    # The dashboard only reads sessions/reports and posts invite codes
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER, "X-RateLimit-Remaining", "X-RateLimit-Limit", "Retry-After"],
    )
