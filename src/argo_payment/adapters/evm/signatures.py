"""
EVM Meta-Transaction Signing Utilities

Local helpers for the native meta-transaction scheme used by the ArGo
token: the user signs (personal_sign) the keccak hash of
``abi.encodePacked(nonce, verifyingContract, chainId, functionSignature)``
and a relay submits ``executeMetaTransaction(user, functionSignature, r, s, v)``.
All cryptographic operations are performed in-process using ``eth_account``.

Exported helpers
----------------
encode_function_call
    ABI-encode a function call (selector + arguments) from an ABI list.

build_meta_transaction_hash
    Hash binding nonce, verifying contract, chain id and encoded call.

split_signature
    Decompose a 65-byte signature into ``SignatureParams`` (r, s, v).

LocalAccountSigner
    ``SignerFacility`` backed by an ``eth_account`` local private key.
"""

from typing import Any, Dict, List, Sequence, Union

from eth_abi import encode as abi_encode
from eth_account import Account
from eth_account.messages import SignableMessage, encode_defunct
from eth_account.signers.local import LocalAccount
from eth_utils import function_signature_to_4byte_selector, to_bytes
from web3 import Web3

from ...engine.exceptions import SignatureError
from ...schemas.bases import SignatureParams
from ..bases import SignerFacility
from .abis import function_signature


def encode_function_call(abi: List[Dict[str, Any]], function_name: str, args: Sequence[Any]) -> str:
    """
    ABI-encode ``function_name(*args)`` into call data.

    Args:
        abi:           Contract ABI containing the function entry.
        function_name: Name of the function to encode.
        args:          Positional arguments, in ABI order.

    Returns:
        0x-prefixed hex string: 4-byte selector followed by encoded arguments.

    Raises:
        ValueError: If the function is missing or the argument count differs.

    Example::

        data = encode_function_call(get_erc20_abi(), "approve", [spender, 10**18])
        # '0x095ea7b3000000000000000000000000...'
    """
    entry = next(
        (item for item in abi if item.get("type") == "function" and item.get("name") == function_name),
        None,
    )
    if entry is None:
        raise ValueError(f"Function {function_name} not found in ABI")

    types = [param["type"] for param in entry.get("inputs", [])]
    if len(types) != len(args):
        raise ValueError(
            f"{function_name} expects {len(types)} arguments, got {len(args)}"
        )

    selector = function_signature_to_4byte_selector(function_signature(entry))
    return "0x" + (selector + abi_encode(types, list(args))).hex()


def build_meta_transaction_hash(
    *,
    nonce: int,
    contract_address: str,
    chain_id: int,
    encoded_call: str,
) -> bytes:
    """
    Compute the hash a user signs to authorize a meta-transaction.

    Mirrors the on-chain check
    ``keccak256(abi.encodePacked(nonce, address(this), chainId, functionSignature))``.

    Args:
        nonce:            Current ``getNonce(user)`` value on the token contract.
        contract_address: Verifying (token) contract address.
        chain_id:         EVM network ID.
        encoded_call:     0x-hex ABI-encoded function call.

    Returns:
        32-byte keccak hash.
    """
    if nonce < 0:
        raise ValueError("nonce must be non-negative")

    return bytes(
        Web3.solidity_keccak(
            ["uint256", "address", "uint256", "bytes"],
            [
                nonce,
                Web3.to_checksum_address(contract_address),
                chain_id,
                to_bytes(hexstr=encoded_call),
            ],
        )
    )


def split_signature(signature: str) -> SignatureParams:
    """
    Decompose a 65-byte ``r || s || v`` signature.

    A recovery byte of 0/1 (as produced by some wallets) is normalised to
    27/28.

    Raises:
        SignatureError: If the signature is not 65 bytes of hex or v is invalid.
    """
    hex_str = signature[2:] if signature[:2] in ("0x", "0X") else signature
    if len(hex_str) != 130:
        raise SignatureError(f"Invalid signature length: expected 130 hex chars, got {len(hex_str)}")
    try:
        v = int(hex_str[128:130], 16)
        int(hex_str[:128], 16)
    except ValueError:
        raise SignatureError("Invalid signature: not valid hexadecimal")

    if v < 27:
        v += 27
    if v not in (27, 28):
        raise SignatureError(f"Invalid recovery ID: {v}")

    return SignatureParams(r="0x" + hex_str[0:64].lower(), s="0x" + hex_str[64:128].lower(), v=v)


def to_signable(message: Union[str, bytes]) -> SignableMessage:
    """
    Wrap ``message`` for EIP-191 personal signing.

    Bytes are signed as-is; 0x-prefixed strings are treated as hex data;
    any other string is signed as UTF-8 text.
    """
    if isinstance(message, (bytes, bytearray)):
        return encode_defunct(primitive=bytes(message))
    if message.startswith("0x"):
        return encode_defunct(hexstr=message)
    return encode_defunct(text=message)


class LocalAccountSigner(SignerFacility):
    """
    ``SignerFacility`` backed by an in-process private key.

    Suitable for servers and tests; browser wallets would implement the
    same interface and suspend in ``sign`` while the user confirms.

    Attributes:
        account: ``eth_account`` local account.

    Example::

        signer = LocalAccountSigner("0xYOUR_PRIVATE_KEY")
        user = await signer.get_address()
        message = signer.build_meta_transaction_message(user, 0, call, token, 1)
        rsv = signer.decompose(await signer.sign(message))
    """

    def __init__(self, private_key: str):
        if not private_key:
            raise ValueError("Private key is required for signing.")
        self.account: LocalAccount = Account.from_key(private_key)

    async def get_address(self) -> str:
        return Web3.to_checksum_address(self.account.address)

    async def sign(self, message: Union[str, bytes]) -> str:
        signed = self.account.sign_message(to_signable(message))
        return "0x" + bytes(signed.signature).hex()

    def decompose(self, signature: str) -> SignatureParams:
        return split_signature(signature)

    def build_meta_transaction_message(
        self,
        user_address: str,
        nonce: int,
        encoded_call: str,
        contract_address: str,
        chain_id: int,
    ) -> bytes:
        # The contract recovers the signer and compares it to user_address,
        # so only the local account can produce a valid signature here.
        if Web3.to_checksum_address(user_address) != Web3.to_checksum_address(self.account.address):
            raise ValueError(f"Signer {self.account.address} cannot authorize calls for {user_address}")

        return build_meta_transaction_hash(
            nonce=nonce,
            contract_address=contract_address,
            chain_id=chain_id,
            encoded_call=encoded_call,
        )

    def verify_signed_message(self, message: Union[str, bytes], signature: str) -> str:
        return Account.recover_message(to_signable(message), signature=signature)
