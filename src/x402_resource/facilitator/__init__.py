"""
Facilitator clients
"""

from x402_resource.facilitator.facilitator_client import FacilitatorClient

__all__ = ["FacilitatorClient"]
