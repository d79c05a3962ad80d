"""
Exception and Error Definitions Module

Defines the exception hierarchy raised by the payment client. Remote
failures (contract reverts, RPC and HTTP errors) are not translated: they
surface as the ``web3`` / ``httpx`` exceptions that caused them. The
classes below cover the failures this package detects itself.

Exception Hierarchy:
    PaymentBaseError (root)
    ├── ConfigurationError
    ├── SignatureError
    ├── RelayError
    │   └── RelayTimeoutError
    └── RemoteCallError
        └── TransactionExecutionError
"""

OWNER_REQUIRED = "owner required"
PROVIDER_REQUIRED = "provider required"
API_KEY_REQUIRED = "Api key required"
INVALID_RELAY_KEY = "Relay key is invalid"
TRANSACTION_FAILED = "Transaction failed"


class PaymentBaseError(Exception):
    """
    Root exception class for all project-specific exceptions.

    Catch this to handle every failure raised by the payment client itself.
    """
    pass


class ConfigurationError(PaymentBaseError):
    """
    Raised when configuration is missing or invalid.

    Always raised before any network call so that no nonce, signature
    prompt or gas is wasted. This includes scenarios such as:
    - Gasless call attempted without a relay API key
    - Price quote requested without a price-feed API key
    - Required environment variables absent
    """
    pass


class SignatureError(PaymentBaseError):
    """
    Raised when a signature cannot be decomposed into (r, s, v).

    This includes scenarios such as:
    - Signature not 65 bytes long
    - Non-hexadecimal signature string
    - Recovery byte outside 0, 1, 27, 28
    """
    pass


class RelayError(PaymentBaseError):
    """
    Raised when the gasless relay reports an error event.

    The relay's payload is carried unchanged: ``payload`` holds the exact
    object emitted by the relay and ``str(error)`` is its string form.
    Whether the meta-transaction was broadcast is unknown to the caller.

    Attributes:
        payload: Error payload emitted by the relay
    """

    def __init__(self, payload):
        super().__init__(payload)
        self.payload = payload

    def __str__(self) -> str:
        return str(self.payload)


class RelayTimeoutError(RelayError):
    """
    Raised when a configured relay readiness deadline expires.

    Only possible when ``relay_timeout`` is set; by default the relay wait
    has no deadline.
    """
    pass


class RemoteCallError(PaymentBaseError):
    """
    Raised when a remote call completes but its result signals failure.

    This includes scenarios such as:
    - Relay accepted the request but returned no transaction hash
    - Quote service returned a payload without a price

    Attributes:
        reason: Error reason reported by the remote side
    """
    pass


class TransactionExecutionError(RemoteCallError):
    """
    Raised when a mined transaction reverted.

    Attributes:
        tx_hash: Transaction hash of the reverted transaction
    """

    def __init__(self, message: str, tx_hash: str = ""):
        super().__init__(message)
        self.tx_hash = tx_hash
