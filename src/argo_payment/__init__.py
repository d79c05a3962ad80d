"""
ArGo payment client.

Charges users on the ArGo payments contract, manages token approvals
(directly or gasless through a meta-transaction relay) and quotes storage
providers' token prices.
"""

from .config import PaymentConfig
from .payment import Payment

__version__ = "0.1.0"

__all__ = ["Payment", "PaymentConfig", "__version__"]
