"""
ArGo Payment Facade

Single entry point for the payments contract, the ArGo token and the
price feed. Every contract method is a direct delegation to a
``ContractGateway`` with unit conversion applied to token amounts
(decimal string in, decimal string out). The one multi-step operation is
``gasless_approval``, which signs an ``approve`` call as a native
meta-transaction and submits it through the relay coordinator.

Architecture:
    Payment (you are here)
        ├── ContractGateway (web3 reads / signed transactions)
        ├── SignerFacility (address, personal_sign, r/s/v split)
        ├── UnitConverter (decimal <-> smallest unit)
        ├── GaslessTransactionCoordinator (relay ready/error race)
        └── QuoteService (CoinMarketCap prices)

Example:
    config = PaymentConfig.from_env()
    async with Payment.from_config(config) as payment:
        balance = await payment.get_user_balance(user)
        tx = await payment.gasless_approval("10.5", chain_id=137)
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Union

from web3 import Web3

from .adapters.bases import ContractGateway, QuoteService, SignerFacility, UnitConverter
from .adapters.evm.abis import get_erc20_abi, get_payments_abi
from .adapters.evm.constants import AKASH_TOKEN_ID, ARWEAVE_TOKEN_ID, DEFAULT_TOKEN_PRECISION
from .adapters.evm.gateway import Web3ContractGateway
from .adapters.evm.signatures import LocalAccountSigner, encode_function_call
from .adapters.evm.units import DecimalUnitConverter, unwrap_result
from .clients.quote_client import CoinMarketCapClient
from .clients.relay_client import HttpRelayClient, RelayedContractGateway
from .config import PaymentConfig
from .engine.coordinator import GaslessTransactionCoordinator
from .engine.exceptions import (
    API_KEY_REQUIRED,
    INVALID_RELAY_KEY,
    OWNER_REQUIRED,
    ConfigurationError,
)
from .schemas.bases import ContractRef, SignatureParams, TxResult

logger = logging.getLogger(__name__)

Amount = Union[str, int, Decimal]


class Payment:
    """
    Facade over the ArGo payments and token contracts.

    Attributes:
        payments: Reference to the payments contract
        erc20: Reference to the ArGo token contract
        gateway: Gateway for direct contract calls
        signer: Wallet signer (required for gasless approvals)
        converter: Token unit converter
        quotes: Price feed client
        coordinator: Relay coordinator; None disables gasless calls
        relay: Relay client, initialised when entering the async context
        token_precision: Token decimals, resolved once
        coinmarketcap_key: Price feed API key
    """

    def __init__(
        self,
        payments_address: str,
        token_address: str,
        gateway: ContractGateway,
        signer: Optional[SignerFacility] = None,
        converter: Optional[UnitConverter] = None,
        quotes: Optional[QuoteService] = None,
        coordinator: Optional[GaslessTransactionCoordinator] = None,
        relay: Optional[HttpRelayClient] = None,
        token_precision: Optional[int] = None,
        coinmarketcap_key: Optional[str] = None,
    ):
        self.payments = ContractRef(
            name="payments",
            address=Web3.to_checksum_address(payments_address),
            abi=get_payments_abi(),
        )
        self.erc20 = ContractRef(
            name="erc20",
            address=Web3.to_checksum_address(token_address),
            abi=get_erc20_abi(),
        )
        self.gateway = gateway
        self.signer = signer
        self.converter = converter or DecimalUnitConverter()
        self.quotes = quotes
        self.coordinator = coordinator
        self.relay = relay
        self.token_precision = DEFAULT_TOKEN_PRECISION if token_precision is None else token_precision
        self.coinmarketcap_key = coinmarketcap_key

    @classmethod
    def from_config(cls, config: PaymentConfig) -> "Payment":
        """
        Wire the web3, relay and price feed adapters described by ``config``.

        The relay is only created when ``config.relay_api_key`` is set.
        """
        gateway = Web3ContractGateway(
            rpc_url=config.rpc_url,
            private_key=config.private_key,
            request_timeout=config.request_timeout,
        )
        signer = LocalAccountSigner(config.private_key) if config.private_key else None

        relay = None
        coordinator = None
        if config.gasless_enabled:
            relay = HttpRelayClient(
                api_key=config.relay_api_key,
                relay_url=config.relay_url,
                timeout=config.request_timeout,
            )
            coordinator = GaslessTransactionCoordinator(
                relay=relay,
                gateway=RelayedContractGateway(relay),
                relay_timeout=config.relay_timeout,
            )

        return cls(
            payments_address=config.payments_address,
            token_address=config.token_address,
            gateway=gateway,
            signer=signer,
            converter=DecimalUnitConverter(),
            quotes=CoinMarketCapClient(timeout=config.request_timeout),
            coordinator=coordinator,
            relay=relay,
            token_precision=config.token_precision,
            coinmarketcap_key=config.coinmarketcap_key,
        )

    async def __aenter__(self) -> "Payment":
        if self.relay is not None:
            await self.relay.init()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP clients owned by this facade."""
        for client in (self.relay, self.quotes):
            if isinstance(client, (HttpRelayClient, CoinMarketCapClient)):
                await client.aclose()

    def _to_wei(self, amount: Amount) -> int:
        return self.converter.to_wei(amount, self.token_precision)

    def _from_wei(self, value: Any) -> str:
        return self.converter.from_wei(value, self.token_precision)

    # =========================================================================
    # Charging
    # =========================================================================

    async def payment_with_fee(
        self,
        user_address: str,
        build_time_in_seconds: Union[str, int],
        deployment_cost: Amount,
        provider_quote: Amount,
        provider_charged: Amount,
        provider_name: str,
    ) -> TxResult:
        """
        Charge ``user_address`` for build time and for a provider deployment.

        Args:
            user_address: Address that is charged
            build_time_in_seconds: Build time after deployment completion
            deployment_cost: Deployment cost charged by the provider, in USD
            provider_quote: Price of the storage provider's token
            provider_charged: Provider tokens charged for deploying
            provider_name: Name of the storage provider

        Returns:
            Pending transaction
        """
        return await self.gateway.invoke(
            self.payments,
            "chargeWithProvider",
            user_address,
            self.converter.to_int(build_time_in_seconds),
            self._to_wei(deployment_cost),
            self._to_wei(provider_quote),
            self._to_wei(provider_charged),
            provider_name,
        )

    async def payment_without_fee(self, user_address: str, build_time_in_seconds: Union[str, int]) -> TxResult:
        """Charge ``user_address`` for build time only."""
        return await self.gateway.invoke(
            self.payments,
            "charge",
            user_address,
            self.converter.to_int(build_time_in_seconds),
        )

    # =========================================================================
    # Administration (access control is enforced on-chain)
    # =========================================================================

    async def update_underlying_token(self, address: str) -> TxResult:
        return await self.gateway.invoke(self.payments, "updateUnderlyingToken", address)

    async def update_escrow(self, address: str) -> TxResult:
        return await self.gateway.invoke(self.payments, "updateEscrow", address)

    async def update_feeder_address(self, address: str) -> TxResult:
        """Point the payments contract at a new price feed oracle."""
        return await self.gateway.invoke(self.payments, "updateFeederAddress", address)

    async def update_staked_token(self, address: str) -> TxResult:
        return await self.gateway.invoke(self.payments, "updateStakedToken", address)

    async def update_token(self, address: str) -> TxResult:
        return await self.gateway.invoke(self.payments, "updateToken", address)

    async def update_discount_slabs(
        self,
        slabs: Sequence[Union[str, int]],
        percents: Sequence[Union[str, int]],
    ) -> TxResult:
        """
        Replace the discount slabs (governance only).

        Args:
            slabs: Slab thresholds, already in smallest units
            percents: Discount percent of each slab
        """
        return await self.gateway.invoke(
            self.payments,
            "updateDiscountSlabs",
            self.converter.to_int_array(slabs),
            self.converter.to_int_array(percents),
        )

    async def change_build_time_rate(self, rate: Amount) -> TxResult:
        """Change the price charged per unit of build time (governance only)."""
        return await self.gateway.invoke(self.payments, "changeBuildTimeRate", self._to_wei(rate))

    async def enable_discounts(self, staking_manager: str) -> TxResult:
        return await self.gateway.invoke(self.payments, "enableDiscounts", staking_manager)

    async def disable_discounts(self) -> TxResult:
        return await self.gateway.invoke(self.payments, "disableDiscounts")

    async def set_governance_address(self, address: str) -> TxResult:
        return await self.gateway.invoke(self.payments, "setGovernanceAddress", address)

    async def set_managers(self, addresses: List[str]) -> TxResult:
        return await self.gateway.invoke(self.payments, "setManagers", list(addresses))

    # =========================================================================
    # Token approvals
    # =========================================================================

    async def set_new_approvals(self, amount: Amount) -> TxResult:
        """Approve the payments contract to spend ``amount`` tokens (caller pays gas)."""
        return await self.gateway.invoke(
            self.erc20,
            "approve",
            self.payments.address,
            self._to_wei(amount),
        )

    async def gasless_approval(self, amount: Amount, chain_id: int) -> Any:
        """
        Approve the payments contract through the gasless relay.

        The user signs an ``approve`` meta-transaction; the relay submits it
        and pays the gas.

        Args:
            amount: New approval amount (decimal string)
            chain_id: Chain the token contract lives on

        Returns:
            Whatever the relay returns for the submission (a pending ``TxResult``
            with the default relay)

        Raises:
            ConfigurationError: No relay (checked before any other call) or no signer
            RelayError: The relay reported an error before becoming ready; a
                relay already in ERROR fails here, before anything is signed
        """
        if self.coordinator is None:
            raise ConfigurationError(INVALID_RELAY_KEY)
        if self.signer is None:
            raise ConfigurationError(OWNER_REQUIRED)
        self.coordinator.check_relay()

        wei = self._to_wei(amount)
        encoded_call = encode_function_call(self.erc20.abi, "approve", [self.payments.address, wei])
        user_address = await self.signer.get_address()
        nonce = await self.get_nonce_for_gasless_erc20(user_address)
        message = self.signer.build_meta_transaction_message(
            user_address,
            nonce,
            encoded_call,
            self.erc20.address,
            chain_id,
        )
        signature = await self.signer.sign(message)
        rsv = self.signer.decompose(signature)
        return await self.send_raw_relay_transaction(user_address, encoded_call, rsv)

    async def send_raw_relay_transaction(
        self,
        user_address: str,
        encoded_call: str,
        rsv: SignatureParams,
    ) -> Any:
        """Relay an already signed token meta-transaction."""
        if self.coordinator is None:
            raise ConfigurationError(INVALID_RELAY_KEY)
        return await self.coordinator.submit_gasless_call(
            user_address,
            encoded_call,
            self.erc20.address,
            rsv,
        )

    async def get_approval_amount(self, user_address: str) -> str:
        """Allowance granted by ``user_address`` to the payments contract."""
        allowance = await self.gateway.invoke(self.erc20, "allowance", user_address, self.payments.address)
        return self._from_wei(allowance)

    async def get_nonce_for_gasless_erc20(self, user_address: str) -> int:
        """
        Current meta-transaction nonce of ``user_address`` on the token.

        A missing or unparseable result is treated as ``0``.
        """
        raw = unwrap_result(await self.gateway.invoke(self.erc20, "getNonce", user_address))
        if raw is None or raw == "" or isinstance(raw, bool):
            logger.warning(f"No nonce returned for {user_address}, defaulting to 0")
            return 0
        try:
            return self.converter.to_int(raw)
        except ValueError:
            logger.warning(f"Unparseable nonce {raw!r} for {user_address}, defaulting to 0")
            return 0

    async def get_user_balance(self, address: str) -> str:
        balance = await self.gateway.invoke(self.erc20, "balanceOf", address)
        return self._from_wei(balance)

    # =========================================================================
    # Payments contract state
    # =========================================================================

    async def get_managers(self) -> List[str]:
        return await self.gateway.invoke(self.payments, "getManagers")

    async def get_governance_address(self) -> str:
        return await self.gateway.invoke(self.payments, "governanceAddress")

    async def get_token(self) -> str:
        """Address of the underlying (ArGo) token."""
        return await self.gateway.invoke(self.payments, "underlying")

    async def get_escrow(self) -> str:
        return await self.gateway.invoke(self.payments, "escrow")

    async def check_if_discounts_enabled(self) -> bool:
        return await self.gateway.invoke(self.payments, "discountsEnabled")

    async def get_staking_manager_address(self) -> str:
        return await self.gateway.invoke(self.payments, "stakingManager")

    async def get_staked_token_address(self) -> str:
        return await self.gateway.invoke(self.payments, "stakedToken")

    async def get_discount_slabs(self) -> Dict[str, List[int]]:
        """
        Current discount slabs.

        Returns:
            ``{"slabs": [...], "percents": [...]}`` with slab thresholds in
            smallest units and percents, both as ints, in the form
            ``update_discount_slabs`` accepts
        """
        slabs, percents = await self.gateway.invoke(self.payments, "discountSlabs")
        return {
            "slabs": self.converter.to_int_array(slabs),
            "percents": self.converter.to_int_array(percents),
        }

    # =========================================================================
    # Price feed
    # =========================================================================

    def _quote_service(self) -> QuoteService:
        if not self.coinmarketcap_key:
            raise ConfigurationError(API_KEY_REQUIRED)
        if self.quotes is None:
            raise ConfigurationError("Quote service is not configured")
        return self.quotes

    async def get_arweave_converted_usd(self, amount: Amount) -> Decimal:
        """USD value of ``amount`` AR."""
        quotes = self._quote_service()
        return await quotes.token_to_usd(amount, ARWEAVE_TOKEN_ID, self.coinmarketcap_key)

    async def get_arweave_quote(self) -> Decimal:
        quotes = self._quote_service()
        return await quotes.token_quote(ARWEAVE_TOKEN_ID, self.coinmarketcap_key)

    async def get_akash_converted_usd(self, amount: Amount) -> Decimal:
        """USD value of ``amount`` AKT."""
        quotes = self._quote_service()
        return await quotes.token_to_usd(amount, AKASH_TOKEN_ID, self.coinmarketcap_key)

    async def get_akash_quote(self) -> Decimal:
        quotes = self._quote_service()
        return await quotes.token_quote(AKASH_TOKEN_ID, self.coinmarketcap_key)
