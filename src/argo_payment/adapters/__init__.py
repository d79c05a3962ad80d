from .bases import ContractGateway, QuoteService, RelayClient, SignerFacility, UnitConverter
from .evm import DecimalUnitConverter, LocalAccountSigner, Web3ContractGateway

__all__ = [
    "ContractGateway",
    "QuoteService",
    "RelayClient",
    "SignerFacility",
    "UnitConverter",
    "DecimalUnitConverter",
    "LocalAccountSigner",
    "Web3ContractGateway",
]
