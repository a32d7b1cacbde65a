"""
Server Mechanisms
"""

from x402_resource.mechanisms.server.base import ServerMechanism
from x402_resource.mechanisms.server.exact import SCHEME_EXACT, ExactServerMechanism

__all__ = [
    "ServerMechanism",
    "ExactServerMechanism",
    "SCHEME_EXACT",
]
