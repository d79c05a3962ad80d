"""
Payment client configuration.

All settings a ``Payment`` facade needs, resolved once: contract
addresses, RPC endpoint, signing key, token precision and the optional
relay and price-feed credentials.
"""

import os
from typing import Optional

import dotenv
from pydantic import BaseModel, Field, field_validator

from .adapters.evm.constants import (
    DEFAULT_RELAY_URL,
    DEFAULT_TOKEN_PRECISION,
    get_coinmarketcap_key_from_env,
    get_private_key_from_env,
    get_relay_key_from_env,
)
from .engine.exceptions import ConfigurationError


class PaymentConfig(BaseModel):
    """
    Configuration for the ArGo payment client.

    Attributes:
        payments_address: Deployed payments contract address
        token_address: ArGo ERC20 token contract address
        rpc_url: JSON-RPC endpoint of the target chain
        private_key: Key signing transactions and meta-transactions (optional for read-only use)
        token_precision: Token decimals (defaults to 18)
        relay_api_key: Gasless relay API key; gasless calls are disabled without it
        relay_url: Gasless relay base URL
        relay_timeout: Seconds to wait for relay readiness; None waits forever
        coinmarketcap_key: Price-feed API key; quote calls fail without it
        request_timeout: HTTP/RPC request timeout in seconds
    """

    payments_address: str = Field(..., description="Payments contract address")
    token_address: str = Field(..., description="ERC20 token contract address")
    rpc_url: Optional[str] = Field(None, description="JSON-RPC endpoint URL")
    private_key: Optional[str] = Field(None, repr=False, description="Signing account private key")
    token_precision: int = Field(DEFAULT_TOKEN_PRECISION, ge=0, le=77, description="Token decimals")
    relay_api_key: Optional[str] = Field(None, repr=False, description="Gasless relay API key")
    relay_url: str = Field(DEFAULT_RELAY_URL, description="Gasless relay base URL")
    relay_timeout: Optional[float] = Field(None, gt=0, description="Relay readiness deadline (seconds)")
    coinmarketcap_key: Optional[str] = Field(None, repr=False, description="CoinMarketCap API key")
    request_timeout: int = Field(60, gt=0, description="Request timeout (seconds)")

    @field_validator("token_precision", mode="before")
    @classmethod
    def _default_precision(cls, value):
        return DEFAULT_TOKEN_PRECISION if value in (None, "") else value

    @property
    def gasless_enabled(self) -> bool:
        return bool(self.relay_api_key)

    @classmethod
    def from_env(cls) -> "PaymentConfig":
        """
        Load configuration from environment variables (and a ``.env`` file).

        Returns:
            PaymentConfig: Resolved configuration

        Raises:
            ConfigurationError: If required environment variables are missing
        """
        dotenv.load_dotenv()

        rpc_url = os.getenv("ARGO_RPC_URL")
        if not rpc_url:
            raise ConfigurationError(
                "ARGO_RPC_URL environment variable is required. "
                "Example: https://polygon-rpc.com"
            )

        payments_address = os.getenv("ARGO_PAYMENTS_ADDRESS")
        if not payments_address:
            raise ConfigurationError(
                "ARGO_PAYMENTS_ADDRESS environment variable is required. "
                "This is the address of the deployed payments contract"
            )

        token_address = os.getenv("ARGO_TOKEN_ADDRESS")
        if not token_address:
            raise ConfigurationError(
                "ARGO_TOKEN_ADDRESS environment variable is required. "
                "This is the address of the ArGo ERC20 token"
            )

        raw_timeout = os.getenv("ARGO_RELAY_TIMEOUT")
        relay_timeout = None
        if raw_timeout:
            try:
                relay_timeout = float(raw_timeout)
            except ValueError:
                raise ConfigurationError(
                    f"ARGO_RELAY_TIMEOUT must be a number of seconds, got {raw_timeout!r}"
                ) from None

        return cls(
            rpc_url=rpc_url,
            payments_address=payments_address,
            token_address=token_address,
            private_key=get_private_key_from_env(),
            token_precision=os.getenv("ARGO_TOKEN_PRECISION"),
            relay_api_key=get_relay_key_from_env(),
            relay_url=os.getenv("ARGO_RELAY_URL") or DEFAULT_RELAY_URL,
            relay_timeout=relay_timeout,
            coinmarketcap_key=get_coinmarketcap_key_from_env(),
        )
