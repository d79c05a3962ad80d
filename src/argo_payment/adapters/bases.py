"""
Abstract Base Classes for Payment Capabilities

Defines the capabilities the payment facade and the gasless coordinator
depend on. Each interface exposes a fixed set of operations; concrete
implementations live in ``adapters.evm`` (web3 / eth_account) and
``clients`` (httpx).

Core Classes:
    - UnitConverter: Human-decimal token amounts <-> smallest-unit integers
    - SignerFacility: Message signing, signature decomposition, caller address
    - ContractGateway: Named remote function invocation on a contract
    - RelayClient: Gasless relay readiness and event subscription
    - QuoteService: Token price quotes from an external feed
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Callable, List, Sequence, Union

from ..schemas.bases import ContractRef, RelayState, SignatureParams


class UnitConverter(ABC):
    """Conversion between human-decimal token amounts and integer units."""

    @abstractmethod
    def to_wei(self, amount: Union[str, int, Decimal], precision: int) -> int:
        """
        Convert a human-decimal amount into smallest-unit integer.

        Example:
            converter.to_wei("10.5", 18)  # 10500000000000000000
        """
        pass

    @abstractmethod
    def from_wei(self, value: Any, precision: int) -> str:
        """
        Convert a smallest-unit integer (or contract result) to a decimal string.

        Example:
            converter.from_wei(10500000000000000000, 18)  # "10.5"
        """
        pass

    @abstractmethod
    def to_int(self, value: Union[str, int]) -> int:
        """Convert a plain integer string (e.g. seconds) to ``int``."""
        pass

    @abstractmethod
    def to_int_array(self, values: Sequence[Union[str, int]]) -> List[int]:
        """Convert every element of ``values`` with ``to_int``."""
        pass


class SignerFacility(ABC):
    """
    Signing capability of the user's wallet.

    ``sign`` may suspend for user interaction (e.g. a wallet confirmation
    prompt); implementations must not assume it returns promptly.
    """

    @abstractmethod
    async def get_address(self) -> str:
        """Return the checksum address of the signing account."""
        pass

    @abstractmethod
    async def sign(self, message: Union[str, bytes]) -> str:
        """Sign ``message`` and return the 65-byte signature as 0x-hex."""
        pass

    @abstractmethod
    def decompose(self, signature: str) -> SignatureParams:
        """Split a 65-byte signature into its (r, s, v) components."""
        pass

    @abstractmethod
    def build_meta_transaction_message(
        self,
        user_address: str,
        nonce: int,
        encoded_call: str,
        contract_address: str,
        chain_id: int,
    ) -> bytes:
        """
        Build the payload authorizing ``encoded_call`` as a meta-transaction.

        The payload binds the nonce, the verifying contract, the chain and
        the exact encoded call so that the signature cannot be replayed.
        """
        pass

    @abstractmethod
    def verify_signed_message(self, message: Union[str, bytes], signature: str) -> str:
        """Return the address that produced ``signature`` over ``message``."""
        pass


class ContractGateway(ABC):
    """Invocation of named functions on deployed contracts."""

    @abstractmethod
    async def invoke(self, contract: ContractRef, function_name: str, *args: Any) -> Any:
        """
        Invoke ``function_name`` on ``contract`` with positional ``args``.

        Returns:
            The decoded return value for view/pure functions, or a
            ``TxResult`` for state-changing functions.
        """
        pass


class RelayClient(ABC):
    """
    Gasless relay with observable readiness.

    The relay is either ready to accept meta-transactions or not yet; it
    announces the transition (or its failure) through listeners.
    """

    @abstractmethod
    def current_state(self) -> RelayState:
        pass

    @abstractmethod
    def on_ready(self, callback: Callable[[], Any]) -> "RelayClient":
        """Register ``callback`` for the READY transition. Returns self."""
        pass

    @abstractmethod
    def on_error(self, callback: Callable[[Any], Any]) -> "RelayClient":
        """Register ``callback`` for relay errors; it receives the error payload. Returns self."""
        pass

    @abstractmethod
    def remove_listener(self, callback: Callable[..., Any]) -> None:
        """Unregister ``callback`` from all events."""
        pass

    def last_error(self) -> Any:
        """Payload of the most recent error event, or ``None``."""
        return None


class QuoteService(ABC):
    """External token price feed."""

    @abstractmethod
    async def token_to_usd(self, amount: Union[str, Decimal], token_id: int, api_key: str) -> Decimal:
        """Convert ``amount`` of token ``token_id`` to USD."""
        pass

    @abstractmethod
    async def token_quote(self, token_id: int, api_key: str) -> Decimal:
        """Return the USD price of one unit of token ``token_id``."""
        pass

