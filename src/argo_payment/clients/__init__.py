"""
HTTP clients for the gasless relay and the CoinMarketCap price feed.
"""

from .quote_client import CoinMarketCapClient
from .relay_client import HttpRelayClient, RelayedContractGateway

__all__ = ["CoinMarketCapClient", "HttpRelayClient", "RelayedContractGateway"]
