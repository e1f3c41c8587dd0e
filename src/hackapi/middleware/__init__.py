"""
Middleware: request/response processing around the router.

    from hackapi.middleware import LoggingMiddleware
    server.use(LoggingMiddleware(log_format="json"))
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "LoggingMiddleware",
    "RequestLog",
]
