from .bases import CanonicalModel, SignatureParams, RelayState, TransactionStatus, TxResult, ContractRef

__all__ = [
    "CanonicalModel",
    "SignatureParams",
    "RelayState",
    "TransactionStatus",
    "TxResult",
    "ContractRef",
]
