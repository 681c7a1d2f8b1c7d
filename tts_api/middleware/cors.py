# ABOUTME: CORS middleware configured from settings for browser callers of the TTS endpoint
# ABOUTME: Wraps Starlette's CORSMiddleware and exposes the gateway's custom response headers

import logging
from typing import Optional, Sequence

from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send

from tts_api.config import get_settings

logger = logging.getLogger(__name__)

ALLOW_METHODS = ["GET", "POST", "OPTIONS"]
ALLOW_HEADERS = ["Accept", "Content-Type", "X-Request-ID", "X-TTS-Secret"]
EXPOSE_HEADERS = [
    "X-Request-ID",
    "X-Model-Used",
    "X-Generation-Time",
    "X-RateLimit-Limit",
    "X-RateLimit-Window",
    "Retry-After",
]


class EnhancedCORSMiddleware:
    """
    Settings-driven wrapper around Starlette's CORSMiddleware.

    Origins default to CORS_ALLOW_ORIGINS; an empty list means no browser
    origin is allowed.
    """

    def __init__(self, app: ASGIApp, allow_origins: Optional[Sequence[str]] = None, max_age: int = 600):
        if allow_origins is None:
            allow_origins = get_settings().cors_allow_origins
            if not allow_origins:
                logger.warning("No CORS origins configured - using restrictive policy")

        wildcard = "*" in allow_origins
        if wildcard:
            logger.warning("CORS configured with wildcard origin")

        self.cors_middleware = CORSMiddleware(
            app,
            allow_origins=list(allow_origins),
            # Credentials cannot be combined with a wildcard origin
            allow_credentials=not wildcard,
            allow_methods=ALLOW_METHODS,
            allow_headers=ALLOW_HEADERS,
            expose_headers=EXPOSE_HEADERS,
            max_age=max_age,
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.cors_middleware(scope, receive, send)
