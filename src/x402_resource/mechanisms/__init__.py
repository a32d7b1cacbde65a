"""
Payment scheme mechanisms
"""

from x402_resource.mechanisms.server import SCHEME_EXACT, ExactServerMechanism, ServerMechanism

__all__ = ["ServerMechanism", "ExactServerMechanism", "SCHEME_EXACT"]
