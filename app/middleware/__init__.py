"""ASGI middleware installed by app.main.create_app."""

from app.middleware.request_size_limit import RequestSizeLimitMiddleware

__all__ = ["RequestSizeLimitMiddleware"]
