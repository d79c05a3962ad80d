"""
Gasless Relay HTTP Client

Provides an httpx-based client for a gasless meta-transaction relay
(Biconomy compatible API) and a ``ContractGateway`` that routes
``executeMetaTransaction`` calls through it, so the relay pays the gas.

The relay starts out NOT_READY. ``init()`` fetches the dapp's relay
configuration; success moves it to READY and notifies ready listeners,
failure moves it to ERROR and notifies error listeners with the error.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx

from ..adapters.bases import ContractGateway, RelayClient
from ..engine.events import ListenerRegistry
from ..engine.exceptions import ConfigurationError, INVALID_RELAY_KEY, RemoteCallError
from ..adapters.evm.constants import DEFAULT_RELAY_URL
from ..schemas.bases import ContractRef, RelayState, TransactionStatus, TxResult

logger = logging.getLogger(__name__)


class HttpRelayClient(httpx.AsyncClient, RelayClient):
    """
    Extended httpx.AsyncClient speaking to a gasless relay.

    Fully compatible with httpx.AsyncClient and usable as an async context
    manager. Readiness is observable through ``current_state()`` and the
    ``on_ready`` / ``on_error`` listeners.

    Usage:
        ```python
        async with HttpRelayClient(api_key="...") as relay:
            relay.on_ready(lambda: print("relay ready"))
            await relay.init()
        ```
    """

    META_INFO_PATH = "/api/v1/dapp/metaInfo"
    NATIVE_META_TX_PATH = "/api/v2/meta-tx/native"

    def __init__(
        self,
        api_key: str,
        relay_url: str = DEFAULT_RELAY_URL,
        **kwargs
    ):
        """
        Initialize relay client.

        Args:
            api_key: Relay dapp API key
            relay_url: Relay base URL
            **kwargs: All standard httpx.AsyncClient arguments (timeout, transport, etc.)

        Raises:
            ConfigurationError: If api_key is empty.
        """
        if not api_key:
            raise ConfigurationError(INVALID_RELAY_KEY)

        headers = {"x-api-key": api_key, "Content-Type": "application/json;charset=utf-8"}
        headers.update(kwargs.pop("headers", {}) or {})
        super().__init__(base_url=relay_url, headers=headers, **kwargs)

        self._relay_state = RelayState.NOT_READY
        self._last_error: Any = None
        self._listeners = ListenerRegistry()
        self._api_ids: Dict[Tuple[str, str], str] = {}

    # =========================================================================
    # Readiness and listeners
    # =========================================================================

    def current_state(self) -> RelayState:
        return self._relay_state

    def last_error(self) -> Any:
        return self._last_error

    def on_ready(self, callback: Callable[[], Any]) -> "HttpRelayClient":
        self._listeners.subscribe(RelayState.READY, callback)
        return self

    def on_error(self, callback: Callable[[Any], Any]) -> "HttpRelayClient":
        self._listeners.subscribe(RelayState.ERROR, callback)
        return self

    def remove_listener(self, callback: Callable[..., Any]) -> None:
        self._listeners.unsubscribe(callback)

    def _transition(self, state: RelayState, *payload: Any) -> None:
        self._relay_state = state
        self._last_error = payload[0] if state == RelayState.ERROR and payload else None
        logger.info(f"Relay state changed to {state.value}")
        self._listeners.emit(state, *payload)

    async def init(self) -> RelayState:
        """
        Fetch the relay configuration and announce readiness.

        Errors are reported through the error listeners rather than raised,
        so callers waiting on readiness learn about them.

        Returns:
            The resulting relay state.
        """
        try:
            response = await self.get(self.META_INFO_PATH)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Relay initialisation failed: {e}")
            self._transition(RelayState.ERROR, e)
            return self._relay_state

        self._api_ids = self._parse_api_ids(payload)
        self._transition(RelayState.READY)
        return self._relay_state

    @staticmethod
    def _parse_api_ids(payload: Dict[str, Any]) -> Dict[Tuple[str, str], str]:
        """Map (contract address, method) pairs to the relay's registered api ids."""
        api_ids = {}
        for api in payload.get("listApis", []) or []:
            address = (api.get("contractAddress") or "").lower()
            method = api.get("method")
            if address and method and api.get("id"):
                api_ids[(address, method)] = api["id"]
        return api_ids

    # =========================================================================
    # Meta-transaction submission
    # =========================================================================

    async def send_meta_transaction(
        self,
        to: str,
        from_address: str,
        method: str,
        params: List[Any],
    ) -> TxResult:
        """
        Submit a signed meta-transaction to the relay.

        Args:
            to: Contract that will execute the call (verifying contract)
            from_address: User who signed the authorization
            method: Contract method, normally ``executeMetaTransaction``
            params: Positional method arguments

        Returns:
            Pending ``TxResult`` carrying the relay's transaction hash.

        Raises:
            httpx.HTTPStatusError: If the relay rejects the request.
            RemoteCallError: If the relay response lacks a transaction hash.
        """
        body: Dict[str, Any] = {
            "to": to,
            "from": from_address,
            "params": params,
            "signatureType": "PERSONAL_SIGN",
        }
        api_id = self._api_ids.get((to.lower(), method))
        if api_id:
            body["apiId"] = api_id

        response = await self.post(self.NATIVE_META_TX_PATH, json=body)
        response.raise_for_status()
        payload = response.json()

        tx_hash: Optional[str] = payload.get("txHash")
        if not tx_hash:
            raise RemoteCallError(f"Relay returned no transaction hash: {payload.get('log') or payload}")

        logger.info(f"Relayed {method} for {from_address}: {tx_hash}")
        return TxResult(
            tx_hash=tx_hash,
            status=TransactionStatus.PENDING,
            from_address=from_address,
            to_address=to,
            raw=payload,
        )


class RelayedContractGateway(ContractGateway):
    """
    ``ContractGateway`` whose state-changing calls are paid for by the relay.

    The first argument of the call is the user on whose behalf the relay
    acts (``executeMetaTransaction(userAddress, ...)``).
    """

    def __init__(self, relay: HttpRelayClient):
        self.relay = relay

    async def invoke(self, contract: ContractRef, function_name: str, *args: Any) -> Any:
        if contract.is_read_only(function_name):
            raise ValueError(f"{function_name} is read-only and cannot be relayed")
        if not args:
            raise ValueError(f"{function_name} needs the user address as first argument")

        return await self.relay.send_meta_transaction(
            to=contract.address,
            from_address=args[0],
            method=function_name,
            params=list(args),
        )
