"""
ArGo Payment Constants and Environment Helpers

Defaults shared by the EVM adapters and the HTTP clients, plus helpers
reading optional settings from environment variables (``.env`` files are
loaded through python-dotenv).
"""

import os
from typing import Optional

import dotenv

dotenv.load_dotenv()

#: Decimals used when a token precision is not configured.
DEFAULT_TOKEN_PRECISION: int = 18

#: CoinMarketCap ids of the storage providers' tokens.
ARWEAVE_TOKEN_ID: int = 5632
AKASH_TOKEN_ID: int = 7431

COINMARKETCAP_API_URL: str = "https://pro-api.coinmarketcap.com"

#: Gasless relay endpoint (Biconomy compatible API).
DEFAULT_RELAY_URL: str = "https://api.biconomy.io"

#: Gas limit used when estimation fails (e.g. zero balance during estimation).
FALLBACK_GAS_LIMIT: int = 100000


def get_private_key_from_env() -> Optional[str]:
    """
    Load the signing account's private key from ``ARGO_PRIVATE_KEY``.

    Returns:
        str: Private key, or None if not configured (read-only usage).
    """
    return os.getenv("ARGO_PRIVATE_KEY")


def get_relay_key_from_env() -> Optional[str]:
    """
    Load the gasless relay API key from ``ARGO_RELAY_API_KEY``.

    Gasless approvals are disabled when the key is not set.
    """
    return os.getenv("ARGO_RELAY_API_KEY") or None


def get_coinmarketcap_key_from_env() -> Optional[str]:
    """
    Load the CoinMarketCap API key from ``COINMARKETCAP_API_KEY``.

    Price quote methods raise ``ConfigurationError`` when it is missing.
    """
    return os.getenv("COINMARKETCAP_API_KEY") or None
