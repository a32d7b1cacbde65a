"""
Resource server
"""

from x402_resource.server.x402_server import ResourceServerExtension, X402ResourceServer

__all__ = ["X402ResourceServer", "ResourceServerExtension"]
