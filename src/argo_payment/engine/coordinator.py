"""
Gasless transaction coordinator.

Submits a signed meta-transaction through a relay, hiding whether the
relay is ready yet. When it is not, the coordinator subscribes once to the
relay's ready and error events and lets whichever fires first decide the
outcome; the other event is ignored.
"""

import asyncio
import logging
from typing import Any, Optional

from ..adapters.bases import ContractGateway, RelayClient
from ..adapters.evm.abis import get_meta_transaction_abi
from ..schemas.bases import ContractRef, RelayState, SignatureParams
from .exceptions import RelayError, RelayTimeoutError

logger = logging.getLogger(__name__)

_READY = object()


def _as_error(payload: Any) -> BaseException:
    return payload if isinstance(payload, BaseException) else RelayError(payload)


class GaslessTransactionCoordinator:
    """
    Turns a signed authorization into a relayed ``executeMetaTransaction`` call.

    The coordinator holds no per-call state: every submission owns its own
    future and listeners, so concurrent submissions do not interfere.

    Attributes:
        relay: Relay whose readiness gates submission
        gateway: Relay-bound gateway that performs the submission
        relay_timeout: Optional deadline (seconds) for the readiness wait;
            ``None`` waits indefinitely
    """

    def __init__(
        self,
        relay: RelayClient,
        gateway: ContractGateway,
        relay_timeout: Optional[float] = None,
    ) -> None:
        self.relay = relay
        self.gateway = gateway
        self.relay_timeout = relay_timeout

    async def submit_gasless_call(
        self,
        user_address: str,
        encoded_call: str,
        target_contract: str,
        rsv: SignatureParams,
    ) -> Any:
        """
        Submit ``encoded_call`` on behalf of ``user_address`` through the relay.

        ``rsv`` must have been produced for exactly this user, call, target
        contract, nonce and chain; it is not re-verified here.

        Args:
            user_address: Address that signed the authorization.
            encoded_call: 0x-hex ABI-encoded function call.
            target_contract: Contract executing the meta-transaction.
            rsv: Decomposed signature.

        Returns:
            Whatever the relay-bound gateway returns for the submission.

        Raises:
            RelayError: The relay reported an error before becoming ready
                or is already in ERROR (non-exception payloads are
                carried in ``payload``).
            RelayTimeoutError: ``relay_timeout`` elapsed first.
            Exception: An exception payload emitted by the relay, unchanged.
        """
        self.check_relay()
        if self.relay.current_state() != RelayState.READY:
            await self._wait_until_ready()

        return await self._execute(user_address, encoded_call, target_contract, rsv)

    def check_relay(self) -> None:
        """
        Fail at once if the relay already reported an error.

        A relay in ERROR emits no further events, so waiting on it would
        never resolve.
        """
        if self.relay.current_state() != RelayState.ERROR:
            return
        payload = self.relay.last_error()
        if payload is None:
            payload = "Relay is in ERROR state"
        raise _as_error(payload)

    async def _wait_until_ready(self) -> None:
        """Resolve once on the first of ready/error; raise on error."""
        outcome: asyncio.Future = asyncio.get_running_loop().create_future()

        def on_ready(*_: Any) -> None:
            if not outcome.done():
                outcome.set_result(_READY)

        def on_error(payload: Any = None) -> None:
            if not outcome.done():
                logger.error(f"Relay reported an error: {payload}")
                outcome.set_exception(_as_error(payload))

        self.relay.on_ready(on_ready)
        self.relay.on_error(on_error)
        logger.debug("Relay not ready, waiting for ready or error event")

        try:
            if self.relay_timeout is not None:
                done, _ = await asyncio.wait({outcome}, timeout=self.relay_timeout)
                if not done:
                    outcome.cancel()
                    raise RelayTimeoutError(f"Relay not ready after {self.relay_timeout}s")
            await outcome
        finally:
            self.relay.remove_listener(on_ready)
            self.relay.remove_listener(on_error)

    async def _execute(
        self,
        user_address: str,
        encoded_call: str,
        target_contract: str,
        rsv: SignatureParams,
    ) -> Any:
        contract = ContractRef(
            name="meta-transaction",
            address=target_contract,
            abi=get_meta_transaction_abi(),
        )
        logger.info(f"Submitting meta-transaction for {user_address} to {target_contract}")
        return await self.gateway.invoke(
            contract,
            "executeMetaTransaction",
            user_address,
            encoded_call,
            rsv.r,
            rsv.s,
            rsv.v,
        )
