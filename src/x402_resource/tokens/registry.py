"""
Token registry - Centralized management of token configurations for all networks
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from x402_resource.exceptions import UnknownTokenError


@dataclass
class TokenInfo:
    """Token information"""

    address: str
    decimals: int
    name: str
    symbol: str
    version: str = "1"


def _same_address(a: str, b: str) -> bool:
    # EVM addresses compare case-insensitively, base58 addresses exactly
    if a.startswith("0x") and b.startswith("0x"):
        return a.lower() == b.lower()
    return a == b


class TokenRegistry:
    """Token registry

    The first token registered for a network is its default token, used for
    money prices that carry no symbol ("$0.01", "0.01").
    """

    _tokens: dict[str, dict[str, TokenInfo]] = {
        "eip155:1": {
            "USDC": TokenInfo(
                address="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
                decimals=6,
                name="USD Coin",
                symbol="USDC",
                version="2",
            ),
        },
        "eip155:8453": {
            "USDC": TokenInfo(
                address="0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
                decimals=6,
                name="USD Coin",
                symbol="USDC",
                version="2",
            ),
        },
        "eip155:84532": {
            "USDC": TokenInfo(
                address="0x036CbD53842c5426634e7929541eC2318f3dCF7e",
                decimals=6,
                name="USDC",
                symbol="USDC",
                version="2",
            ),
        },
        "tron:mainnet": {
            "USDT": TokenInfo(
                address="TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6t",
                decimals=6,
                name="Tether USD",
                symbol="USDT",
            ),
        },
        "tron:nile": {
            "USDT": TokenInfo(
                address="TXYZopYRdj2D9XRtbG411XZZ3kM5VkAeBf",
                decimals=6,
                name="Tether USD",
                symbol="USDT",
            ),
        },
    }

    @classmethod
    def register_token(cls, network: str, token: TokenInfo) -> None:
        """Register a custom token for specified network

        Args:
            network: Network identifier (e.g. "eip155:8453")
            token: TokenInfo to register
        """
        cls._tokens.setdefault(network, {})[token.symbol.upper()] = token

    @classmethod
    def get_token(cls, network: str, symbol: str) -> TokenInfo:
        """Get token information for specified network and symbol

        Raises:
            UnknownTokenError: If token does not exist
        """
        token = cls._tokens.get(network, {}).get(symbol.upper())
        if token is None:
            raise UnknownTokenError(f"Unknown token {symbol} on network {network}")
        return token

    @classmethod
    def get_default_token(cls, network: str) -> TokenInfo:
        """Get the default (first registered) token for a network

        Raises:
            UnknownTokenError: If no token is registered for the network
        """
        tokens = cls._tokens.get(network)
        if not tokens:
            raise UnknownTokenError(f"No default token for network {network}")
        return next(iter(tokens.values()))

    @classmethod
    def find_by_address(cls, network: str, address: str) -> TokenInfo | None:
        """Find token information by address"""
        for info in cls._tokens.get(network, {}).values():
            if _same_address(info.address, address):
                return info
        return None

    @classmethod
    def get_network_tokens(cls, network: str) -> dict[str, TokenInfo]:
        """Get all tokens for specified network"""
        return cls._tokens.get(network, {})

    @classmethod
    def parse_price(cls, price: str | int | float, network: str) -> dict[str, Any]:
        """Parse a money price into an asset amount

        Accepted forms: "$0.01", "0.01", "0.01 USDC", 0.01. Prices without a
        symbol are denominated in the network's default token.

        Args:
            price: Money price
            network: Network identifier

        Returns:
            Dictionary containing amount (atomic units), asset, decimals, etc.

        Raises:
            ValueError: If the price cannot be parsed or is negative
            UnknownTokenError: If the token is not registered
        """
        if isinstance(price, bool):
            raise ValueError(f"Invalid price format: {price!r}")

        if isinstance(price, (int, float)):
            amount_str, symbol = str(price), None
        else:
            parts = price.strip().lstrip("$").split()
            if len(parts) == 1:
                amount_str, symbol = parts[0], None
            elif len(parts) == 2:
                amount_str, symbol = parts
            else:
                raise ValueError(f"Invalid price format: {price}")

        try:
            amount = Decimal(amount_str.replace(",", ""))
        except InvalidOperation as e:
            raise ValueError(f"Invalid price format: {price}") from e
        if not amount.is_finite() or amount < 0:
            raise ValueError(f"Invalid price amount: {price}")

        token = cls.get_token(network, symbol) if symbol else cls.get_default_token(network)
        amount_smallest = int(amount.scaleb(token.decimals))

        return {
            "amount": amount_smallest,
            "asset": token.address,
            "decimals": token.decimals,
            "symbol": token.symbol,
            "name": token.name,
            "version": token.version,
        }
