"""
Token registry
"""

from x402_resource.tokens.registry import TokenInfo, TokenRegistry

__all__ = ["TokenInfo", "TokenRegistry"]
