"""
Base Schema Models for the ArGo Payment Client

This module defines the value objects passed between the payment facade,
the gasless coordinator and the blockchain/relay adapters.

Core Classes:
    - CanonicalModel: Pydantic base model with deterministic JSON serialization
    - SignatureParams: ECDSA signature split into (r, s, v)
    - RelayState: Readiness state reported by a gasless relay
    - TransactionStatus: Lifecycle status of a submitted transaction
    - TxResult: Handle for a submitted (or confirmed) transaction
    - ContractRef: Name, address and ABI of a remote contract

Dependencies:
    - pydantic: For data validation and serialization
"""

import json
from typing import Optional, Dict, Any, List
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CanonicalModel(BaseModel):
    """
    Pydantic base model with canonical JSON serialization.

    Keys are sorted and whitespace is stripped so two equal models always
    serialize to the same string.

    Example:
        class MyModel(CanonicalModel):
            name: str
            value: int

        MyModel(name="test", value=123).to_canonical_json()
        # '{"name":"test","value":123}'
    """

    model_config = ConfigDict(populate_by_name=True)

    def to_canonical_json(self) -> str:
        """
        Convert model to a sorted, whitespace-free JSON string.

        Returns:
            str: Canonical JSON representation.
        """
        data = self.model_dump(mode="json")
        return json.dumps(
            data,
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False
        )


class SignatureParams(CanonicalModel):
    """
    ECDSA signature components used for on-chain verification.

    Produced by ``SignerFacility.decompose`` and passed verbatim to
    ``executeMetaTransaction(user, functionSignature, r, s, v)``.

    Attributes:
        r: r component, 0x-prefixed 64-char hex string.
        s: s component, 0x-prefixed 64-char hex string.
        v: Recovery byte (27 or 28).

    Example::

        rsv = SignatureParams(r="0x" + "a" * 64, s="0x" + "b" * 64, v=27)
        rsv.to_packed_hex()
    """

    model_config = ConfigDict(frozen=True)

    r: str = Field(..., description="Signature r component (32 bytes, 0x-prefixed hex)")
    s: str = Field(..., description="Signature s component (32 bytes, 0x-prefixed hex)")
    v: int = Field(..., ge=27, le=28, description="ECDSA recovery ID (27 or 28)")

    def to_packed_hex(self) -> str:
        """
        Encode r/s/v back into a packed 65-byte hex string (``r || s || v``).

        Returns:
            0x-prefixed 132-character hex string.
        """
        r = self.r.replace("0x", "").replace("0X", "").zfill(64)
        s = self.s.replace("0x", "").replace("0X", "").zfill(64)
        return "0x" + r + s + format(self.v, "02x")


class RelayState(str, Enum):
    """
    Readiness of a gasless relay.

    Attributes:
        READY: Relay accepts meta-transactions now
        NOT_READY: Relay is still initialising
        ERROR: Relay failed to initialise or reported a failure
    """
    READY = "ready"
    NOT_READY = "not_ready"
    ERROR = "error"


class TransactionStatus(str, Enum):
    """
    Enumeration of transaction lifecycle statuses.

    Attributes:
        PENDING: Broadcast (directly or via relay), not yet confirmed
        SUCCESS: Mined and executed successfully
        FAILED: Mined but reverted
        TIMEOUT: Receipt polling gave up
    """
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"


class TxResult(CanonicalModel):
    """
    Handle for a transaction submitted through a contract gateway or relay.

    Attributes:
        tx_hash: Transaction hash (0x-prefixed hex)
        status: Lifecycle status
        from_address: Sender address, when known
        to_address: Target contract address, when known
        block_number: Block the transaction was mined in
        gas_used: Gas consumed by execution
        error_message: Reason for failure or timeout
        raw: Provider or relay specific payload
    """

    tx_hash: str = Field(..., description="Transaction hash")
    status: TransactionStatus = Field(default=TransactionStatus.PENDING, description="Lifecycle status")
    from_address: Optional[str] = Field(None, description="Sender address")
    to_address: Optional[str] = Field(None, description="Target contract address")
    block_number: Optional[int] = Field(None, ge=0, description="Block number of inclusion")
    gas_used: Optional[int] = Field(None, ge=0, description="Gas used by execution")
    error_message: Optional[str] = Field(None, description="Failure reason")
    raw: Optional[Dict[str, Any]] = Field(None, description="Provider-specific payload")

    def is_success(self) -> bool:
        """Return True once the transaction is mined and did not revert."""
        return self.status == TransactionStatus.SUCCESS

    def is_pending(self) -> bool:
        return self.status == TransactionStatus.PENDING


class ContractRef(CanonicalModel):
    """
    A remote contract reachable by name.

    Attributes:
        name: Logical name used in logs (e.g. ``"payments"``, ``"erc20"``)
        address: Deployed contract address
        abi: ABI entries for the functions this client calls
    """

    model_config = ConfigDict(frozen=True)

    name: str
    address: str
    abi: List[Dict[str, Any]] = Field(default_factory=list)

    def function_abi(self, function_name: str) -> Dict[str, Any]:
        """
        Look up the ABI entry of ``function_name``.

        Raises:
            ValueError: If the function is not part of the ABI.
        """
        for entry in self.abi:
            if entry.get("type", "function") == "function" and entry.get("name") == function_name:
                return entry
        raise ValueError(f"Function {function_name} not found in {self.name} ABI")

    def is_read_only(self, function_name: str) -> bool:
        """Return True for ``view``/``pure`` functions."""
        return self.function_abi(function_name).get("stateMutability") in ("view", "pure")
