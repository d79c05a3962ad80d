from .abis import get_erc20_abi, get_meta_transaction_abi, get_payments_abi
from .gateway import Web3ContractGateway
from .signatures import (
    LocalAccountSigner,
    build_meta_transaction_hash,
    encode_function_call,
    split_signature,
)
from .units import DecimalUnitConverter, amount_to_value, value_to_amount
from .verifies import recover_meta_transaction_signer, verify_meta_transaction

__all__ = [
    "get_erc20_abi",
    "get_meta_transaction_abi",
    "get_payments_abi",
    "Web3ContractGateway",
    "LocalAccountSigner",
    "build_meta_transaction_hash",
    "encode_function_call",
    "split_signature",
    "DecimalUnitConverter",
    "amount_to_value",
    "value_to_amount",
    "recover_meta_transaction_signer",
    "verify_meta_transaction",
]
