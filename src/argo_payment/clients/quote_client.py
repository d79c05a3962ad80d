"""
CoinMarketCap Price Quote Client

httpx-based ``QuoteService`` used to price storage providers' tokens
(Arweave, Akash) in USD. The API key is passed per call so a single client
can serve several facades.
"""

from decimal import Decimal
from typing import Any, Dict, Union

import httpx

from ..adapters.bases import QuoteService
from ..adapters.evm.constants import COINMARKETCAP_API_URL
from ..engine.exceptions import ConfigurationError, API_KEY_REQUIRED, RemoteCallError


class CoinMarketCapClient(httpx.AsyncClient, QuoteService):
    """
    Extended httpx.AsyncClient for the CoinMarketCap pro API.

    Usage:
        ```python
        async with CoinMarketCapClient() as quotes:
            usd = await quotes.token_to_usd("2.5", ARWEAVE_TOKEN_ID, api_key)
        ```
    """

    PRICE_CONVERSION_PATH = "/v2/tools/price-conversion"
    QUOTES_LATEST_PATH = "/v2/cryptocurrency/quotes/latest"

    def __init__(self, api_url: str = COINMARKETCAP_API_URL, **kwargs):
        super().__init__(base_url=api_url, **kwargs)

    async def _get_data(self, path: str, params: Dict[str, Any], api_key: str) -> Any:
        if not api_key:
            raise ConfigurationError(API_KEY_REQUIRED)

        response = await self.get(
            path,
            params=params,
            headers={"X-CMC_PRO_API_KEY": api_key, "Accept": "application/json"},
        )
        response.raise_for_status()
        return response.json().get("data")

    async def token_to_usd(self, amount: Union[str, Decimal], token_id: int, api_key: str) -> Decimal:
        """
        Convert ``amount`` of token ``token_id`` into USD.

        Raises:
            ConfigurationError: If ``api_key`` is empty.
            httpx.HTTPStatusError: If the API rejects the request.
            RemoteCallError: If the response carries no USD price.
        """
        data = await self._get_data(
            self.PRICE_CONVERSION_PATH,
            {"amount": str(amount), "id": token_id, "convert": "USD"},
            api_key,
        )
        # v2 wraps single-id conversions in a list
        if isinstance(data, list):
            data = data[0] if data else None
        return self._usd_price(data, token_id)

    async def token_quote(self, token_id: int, api_key: str) -> Decimal:
        """
        Latest USD price of one ``token_id`` token.

        Raises:
            ConfigurationError: If ``api_key`` is empty.
            httpx.HTTPStatusError: If the API rejects the request.
            RemoteCallError: If the response carries no USD price.
        """
        data = await self._get_data(
            self.QUOTES_LATEST_PATH,
            {"id": token_id, "convert": "USD"},
            api_key,
        )
        entry = (data or {}).get(str(token_id))
        if isinstance(entry, list):
            entry = entry[0] if entry else None
        return self._usd_price(entry, token_id)

    @staticmethod
    def _usd_price(entry: Any, token_id: int) -> Decimal:
        try:
            price = entry["quote"]["USD"]["price"]
        except (KeyError, TypeError):
            raise RemoteCallError(f"No USD quote returned for token {token_id}")
        if price is None:
            raise RemoteCallError(f"No USD quote returned for token {token_id}")
        return Decimal(str(price))
