# ABOUTME: Middleware package initialization with all middleware components
# ABOUTME: Exports timeout, rate limiting, logging, and CORS middleware for the TTS gateway

from .timeout import TimeoutMiddleware
from .rate_limit import RateLimitMiddleware
from .logging import LoggingMiddleware, get_client_ip
from .cors import EnhancedCORSMiddleware

__all__ = [
    "TimeoutMiddleware",
    "RateLimitMiddleware",
    "LoggingMiddleware",
    "EnhancedCORSMiddleware",
    "get_client_ip",
]
