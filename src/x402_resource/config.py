"""
X402 Network Configuration
Centralized protocol constants, network identifiers and server settings
"""

import os
from dataclasses import dataclass
from typing import Dict

from x402_resource.exceptions import ConfigurationError, UnsupportedNetworkError


class NetworkConfig:
    """Protocol constants and well-known networks"""

    # Protocol version spoken by this server
    X402_VERSION = 2

    DEFAULT_MAX_TIMEOUT_SECONDS = 300
    DEFAULT_FACILITATOR_URL = "https://x402.org/facilitator"
    DEFAULT_FACILITATOR_TIMEOUT = 30.0

    # EVM Networks (CAIP-2)
    EVM_MAINNET = "eip155:1"
    EVM_BASE = "eip155:8453"
    EVM_BASE_SEPOLIA = "eip155:84532"

    # TRON Networks
    TRON_MAINNET = "tron:mainnet"
    TRON_SHASTA = "tron:shasta"
    TRON_NILE = "tron:nile"

    CHAIN_IDS: Dict[str, int] = {
        "eip155:1": 1,
        "eip155:8453": 8453,
        "eip155:84532": 84532,
        "tron:mainnet": 728126428,  # 0x2b6653dc
        "tron:shasta": 2494104990,  # 0x94a9059e
        "tron:nile": 3448148188,  # 0xcd8690dc
    }

    TESTNETS = frozenset({"eip155:84532", "tron:shasta", "tron:nile"})

    @classmethod
    def get_chain_id(cls, network: str) -> int:
        """Get chain ID for network

        Args:
            network: Network identifier (e.g., "eip155:8453", "tron:nile")

        Returns:
            Chain ID as integer

        Raises:
            UnsupportedNetworkError: If network is not known
        """
        chain_id = cls.CHAIN_IDS.get(network)
        if chain_id is None:
            raise UnsupportedNetworkError(f"Unsupported network: {network}")
        return chain_id

    @classmethod
    def is_testnet(cls, network: str) -> bool:
        return network in cls.TESTNETS


@dataclass
class ResourceServerSettings:
    """Settings an application needs to stand up a resource server"""

    facilitator_url: str = NetworkConfig.DEFAULT_FACILITATOR_URL
    pay_to: str | None = None
    network: str = NetworkConfig.EVM_BASE_SEPOLIA
    facilitator_timeout: float = NetworkConfig.DEFAULT_FACILITATOR_TIMEOUT

    @classmethod
    def from_env(cls, environ: Dict[str, str] | None = None) -> "ResourceServerSettings":
        """Read settings from X402_* environment variables.

        Args:
            environ: Mapping to read from (default: os.environ)

        Returns:
            ResourceServerSettings

        Raises:
            ConfigurationError: If a value cannot be parsed
        """
        env = os.environ if environ is None else environ

        timeout_raw = env.get("X402_FACILITATOR_TIMEOUT")
        try:
            timeout = (
                float(timeout_raw)
                if timeout_raw
                else NetworkConfig.DEFAULT_FACILITATOR_TIMEOUT
            )
        except ValueError as e:
            raise ConfigurationError(
                f"X402_FACILITATOR_TIMEOUT must be a number, got {timeout_raw!r}"
            ) from e

        return cls(
            facilitator_url=(
                env.get("X402_FACILITATOR_URL") or NetworkConfig.DEFAULT_FACILITATOR_URL
            ),
            pay_to=env.get("X402_PAY_TO") or None,
            network=env.get("X402_NETWORK") or NetworkConfig.EVM_BASE_SEPOLIA,
            facilitator_timeout=timeout,
        )
