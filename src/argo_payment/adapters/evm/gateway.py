"""
EVM Contract Gateway

``ContractGateway`` implementation over ``web3.AsyncWeb3``. View and pure
functions are executed with ``eth_call`` and return their decoded value;
state-changing functions are built, signed with the configured account and
broadcast, returning a pending ``TxResult``.

No retries are performed: RPC failures and contract reverts surface as the
``web3`` exceptions that caused them.

Dependencies:
    - web3.py: For blockchain RPC interaction
    - eth_account: For transaction signing
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from eth_account import Account
from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError, TransactionNotFound

from ...engine.exceptions import (
    ConfigurationError,
    OWNER_REQUIRED,
    PROVIDER_REQUIRED,
    TRANSACTION_FAILED,
    TransactionExecutionError,
)
from ...schemas.bases import ContractRef, TransactionStatus, TxResult
from ..bases import ContractGateway
from .constants import FALLBACK_GAS_LIMIT

logger = logging.getLogger(__name__)


def _checksum_args(w3: AsyncWeb3, inputs: List[Dict[str, Any]], args: Sequence[Any]) -> List[Any]:
    """Checksum every ``address`` / ``address[]`` argument so lowercase input is accepted."""
    normalized = []
    for param, value in zip(inputs, args):
        if param["type"] == "address" and isinstance(value, str):
            value = w3.to_checksum_address(value)
        elif param["type"] == "address[]":
            value = [w3.to_checksum_address(item) for item in value]
        normalized.append(value)
    return normalized


class Web3ContractGateway(ContractGateway):
    """
    Contract gateway bound to one RPC endpoint and (optionally) one account.

    Without a private key the gateway is read-only: view calls work, state
    changing calls raise ``ConfigurationError``.

    Attributes:
        account: Signing account, or None for read-only use
        web3: ``AsyncWeb3`` instance used for every call

    Example:
        gateway = Web3ContractGateway(rpc_url="https://...", private_key="0x...")
        balance = await gateway.invoke(erc20, "balanceOf", user)
        tx = await gateway.invoke(payments, "charge", user, 120)
        confirmed = await gateway.wait_for_receipt(tx)
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        private_key: Optional[str] = None,
        web3: Optional[AsyncWeb3] = None,
        request_timeout: int = 60,
    ):
        if web3 is None:
            if not rpc_url:
                raise ConfigurationError(PROVIDER_REQUIRED)
            web3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(
                rpc_url,
                request_kwargs={"timeout": request_timeout}
            ))
        self.web3 = web3
        self.account = Account.from_key(private_key) if private_key else None

    def _function(self, contract: ContractRef, function_name: str, args: Sequence[Any]):
        entry = contract.function_abi(function_name)
        bound = self.web3.eth.contract(
            address=self.web3.to_checksum_address(contract.address),
            abi=contract.abi,
        )
        call_args = _checksum_args(self.web3, entry.get("inputs", []), args)
        return getattr(bound.functions, function_name)(*call_args)

    async def invoke(self, contract: ContractRef, function_name: str, *args: Any) -> Any:
        function = self._function(contract, function_name, args)

        if contract.is_read_only(function_name):
            return await function.call()

        return await self._transact(contract, function_name, function)

    async def _transact(self, contract: ContractRef, function_name: str, function) -> TxResult:
        """Build, sign and broadcast a state-changing call."""
        if self.account is None:
            raise ConfigurationError(OWNER_REQUIRED)

        sender = self.account.address
        tx_params: Dict[str, Any] = {
            "chainId": await self.web3.eth.chain_id,
            "from": sender,
            "nonce": await self.web3.eth.get_transaction_count(sender),
        }

        # Gas estimation with 10% buffer; a revert during estimation is final
        try:
            gas_estimate = await function.estimate_gas({"from": sender})
            tx_params["gas"] = int(gas_estimate * 1.1)
        except ContractLogicError:
            raise
        except Exception as e:
            logger.warning(f"Gas estimation for {contract.name}.{function_name} failed ({e}), using fallback limit")
            tx_params["gas"] = FALLBACK_GAS_LIMIT

        # Dynamic Gas Fee Handling (EIP-1559), legacy gas price otherwise
        try:
            fee_history = await self.web3.eth.fee_history(1, "latest", [25.0])
            base_fee = fee_history["baseFeePerGas"][-1]
            priority_fee = fee_history["reward"][0][0]
            tx_params["maxPriorityFeePerGas"] = priority_fee
            tx_params["maxFeePerGas"] = (base_fee * 2) + priority_fee
        except Exception:
            tx_params["gasPrice"] = await self.web3.eth.gas_price

        transaction = await function.build_transaction(tx_params)
        signed_tx = self.account.sign_transaction(transaction)
        tx_hash = await self.web3.eth.send_raw_transaction(signed_tx.raw_transaction)
        tx_hash_hex = "0x" + bytes(tx_hash).hex()

        logger.info(f"Broadcast {contract.name}.{function_name}: {tx_hash_hex}")
        return TxResult(
            tx_hash=tx_hash_hex,
            status=TransactionStatus.PENDING,
            from_address=sender,
            to_address=contract.address,
        )

    async def wait_for_receipt(
        self,
        tx: TxResult,
        max_attempts: int = 60,
        poll_interval: float = 6.0,
    ) -> TxResult:
        """
        Poll for the receipt of a broadcast transaction.

        Args:
            tx:            Pending transaction handle.
            max_attempts:  Maximum receipt poll attempts (default 60).
            poll_interval: Seconds between polls (default 6).

        Returns:
            ``TxResult`` with ``SUCCESS`` status and receipt data, or
            ``TIMEOUT`` if no receipt appeared in time.

        Raises:
            TransactionExecutionError: If the transaction reverted.
        """
        receipt = None
        for _ in range(max_attempts):
            try:
                receipt = await self.web3.eth.get_transaction_receipt(tx.tx_hash)
                if receipt:
                    break
            except TransactionNotFound:
                pass  # still pending
            await asyncio.sleep(poll_interval)

        if not receipt:
            return tx.model_copy(update={
                "status": TransactionStatus.TIMEOUT,
                "error_message": "Transaction confirmation timed out",
            })

        if receipt.get("status") != 1:
            raise TransactionExecutionError(f"{TRANSACTION_FAILED}: {tx.tx_hash}", tx_hash=tx.tx_hash)

        return tx.model_copy(update={
            "status": TransactionStatus.SUCCESS,
            "block_number": receipt["blockNumber"],
            "gas_used": receipt["gasUsed"],
            "from_address": receipt.get("from", tx.from_address),
            "to_address": receipt.get("to", tx.to_address),
        })
