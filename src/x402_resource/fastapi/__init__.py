"""
FastAPI middleware for x402 payment handling
"""

from x402_resource.fastapi.middleware import (
    FastAPIAdapter,
    X402Middleware,
    payment_middleware,
    x402_protected,
)

__all__ = ["FastAPIAdapter", "X402Middleware", "payment_middleware", "x402_protected"]
