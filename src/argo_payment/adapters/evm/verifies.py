"""
EVM Meta-Transaction Signature Verification

Off-chain counterpart of the token contract's ``executeMetaTransaction``
signer check. Useful to validate an (r, s, v) triple before handing it to
a relay, and to test the sign -> decompose -> verify round trip without a
node.
"""

import logging

from eth_account import Account
from eth_account.messages import encode_defunct

from ...schemas.bases import SignatureParams
from .signatures import build_meta_transaction_hash

logger = logging.getLogger(__name__)


def recover_meta_transaction_signer(
    *,
    nonce: int,
    contract_address: str,
    chain_id: int,
    encoded_call: str,
    rsv: SignatureParams,
) -> str:
    """
    Recover the address that signed a meta-transaction authorization.

    Args:
        nonce:            Nonce the signature was produced for.
        contract_address: Verifying (token) contract address.
        chain_id:         EVM network ID.
        encoded_call:     0x-hex ABI-encoded function call.
        rsv:              Decomposed signature.

    Returns:
        Checksum address of the signer.
    """
    message_hash = build_meta_transaction_hash(
        nonce=nonce,
        contract_address=contract_address,
        chain_id=chain_id,
        encoded_call=encoded_call,
    )
    signable = encode_defunct(primitive=message_hash)
    return Account.recover_message(signable, vrs=(rsv.v, int(rsv.r, 16), int(rsv.s, 16)))


def verify_meta_transaction(
    *,
    user_address: str,
    nonce: int,
    contract_address: str,
    chain_id: int,
    encoded_call: str,
    rsv: SignatureParams,
) -> bool:
    """
    Check that ``rsv`` authorizes ``encoded_call`` for ``user_address``.

    Returns:
        ``True`` if the recovered signer equals ``user_address``, ``False``
        otherwise (including unrecoverable signatures).
    """
    try:
        recovered = recover_meta_transaction_signer(
            nonce=nonce,
            contract_address=contract_address,
            chain_id=chain_id,
            encoded_call=encoded_call,
            rsv=rsv,
        )
    except Exception as e:
        logger.debug(f"Meta-transaction signature not recoverable: {e}")
        return False

    return recovered.lower() == user_address.lower()
