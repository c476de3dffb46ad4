"""
ICPay custom exception hierarchy
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable error codes shared with the ICPay API"""

    # Wallet
    WALLET_NOT_CONNECTED = "WALLET_NOT_CONNECTED"
    WALLET_CONNECTION_FAILED = "WALLET_CONNECTION_FAILED"
    WALLET_SIGNATURE_REJECTED = "WALLET_SIGNATURE_REJECTED"
    WALLET_USER_CANCELLED = "WALLET_USER_CANCELLED"
    WALLET_PROVIDER_NOT_AVAILABLE = "WALLET_PROVIDER_NOT_AVAILABLE"
    UNSUPPORTED_PROVIDER = "UNSUPPORTED_PROVIDER"
    NO_PROVIDERS_AVAILABLE = "NO_PROVIDERS_AVAILABLE"

    # Balance
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    BALANCE_CHECK_FAILED = "BALANCE_CHECK_FAILED"

    # Transactions
    TRANSACTION_FAILED = "TRANSACTION_FAILED"
    TRANSACTION_TIMEOUT = "TRANSACTION_TIMEOUT"
    TRANSACTION_CANCELLED = "TRANSACTION_CANCELLED"
    TRANSACTION_INVALID = "TRANSACTION_INVALID"
    TRANSACTION_STATUS_FETCH_FAILED = "TRANSACTION_STATUS_FETCH_FAILED"
    TRANSACTION_SYNC_TRIGGER_FAILED = "TRANSACTION_SYNC_TRIGGER_FAILED"
    TRANSACTION_HISTORY_FETCH_FAILED = "TRANSACTION_HISTORY_FETCH_FAILED"

    # Network / API
    NETWORK_ERROR = "NETWORK_ERROR"
    API_ERROR = "API_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Configuration
    INVALID_CONFIG = "INVALID_CONFIG"
    MISSING_PUBLISHABLE_KEY = "MISSING_PUBLISHABLE_KEY"
    INVALID_PUBLISHABLE_KEY = "INVALID_PUBLISHABLE_KEY"
    SECRET_KEY_REQUIRED = "SECRET_KEY_REQUIRED"

    # Ledgers and accounts
    LEDGER_NOT_FOUND = "LEDGER_NOT_FOUND"
    LEDGER_INFO_FETCH_FAILED = "LEDGER_INFO_FETCH_FAILED"
    LEDGER_BALANCES_FETCH_FAILED = "LEDGER_BALANCES_FETCH_FAILED"
    ACCOUNT_WALLET_BALANCES_FETCH_FAILED = "ACCOUNT_WALLET_BALANCES_FETCH_FAILED"
    VERIFIED_LEDGERS_FETCH_FAILED = "VERIFIED_LEDGERS_FETCH_FAILED"
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    ACCOUNT_INFO_FETCH_FAILED = "ACCOUNT_INFO_FETCH_FAILED"
    PAYMENT_HISTORY_FETCH_FAILED = "PAYMENT_HISTORY_FETCH_FAILED"

    # Pricing
    INVALID_USD_AMOUNT = "INVALID_USD_AMOUNT"
    PRICE_NOT_AVAILABLE = "PRICE_NOT_AVAILABLE"
    PRICE_CALCULATION_FAILED = "PRICE_CALCULATION_FAILED"
    SEND_FUNDS_USD_FAILED = "SEND_FUNDS_USD_FAILED"

    # Generic
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


_WALLET_CODES = {
    ErrorCode.WALLET_NOT_CONNECTED,
    ErrorCode.WALLET_CONNECTION_FAILED,
    ErrorCode.WALLET_SIGNATURE_REJECTED,
    ErrorCode.WALLET_USER_CANCELLED,
    ErrorCode.WALLET_PROVIDER_NOT_AVAILABLE,
    ErrorCode.UNSUPPORTED_PROVIDER,
    ErrorCode.NO_PROVIDERS_AVAILABLE,
}

_BALANCE_CODES = {ErrorCode.INSUFFICIENT_BALANCE, ErrorCode.BALANCE_CHECK_FAILED}

_NETWORK_CODES = {
    ErrorCode.NETWORK_ERROR,
    ErrorCode.API_ERROR,
    ErrorCode.RATE_LIMIT_EXCEEDED,
}


class IcpayError(Exception):
    """ICPay base exception

    Every error raised by the SDK carries a stable ``code`` so callers can
    branch on it without parsing messages.

    Args:
        code: Stable error code
        message: Human readable message
        details: Optional structured context (ledger errors, HTTP payloads, ...)
        retryable: Whether repeating the same call may succeed
        user_action: Optional hint shown to the end user
    """

    default_code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | str | None = None,
        details: Any = None,
        retryable: bool = False,
        user_action: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = ErrorCode(code) if code is not None else self.default_code
        self.message = message
        self.details = details
        self.retryable = retryable
        self.user_action = user_action

    def is_user_cancelled(self) -> bool:
        return self.code in (ErrorCode.WALLET_USER_CANCELLED, ErrorCode.TRANSACTION_CANCELLED)

    def is_retryable(self) -> bool:
        return self.retryable

    def is_wallet_error(self) -> bool:
        return self.code in _WALLET_CODES

    def is_balance_error(self) -> bool:
        return self.code in _BALANCE_CODES

    def is_network_error(self) -> bool:
        return self.code in _NETWORK_CODES

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
            "userAction": self.user_action,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.value!r}, message={self.message!r})"


class ConfigurationError(IcpayError):
    """Invalid SDK configuration"""

    default_code = ErrorCode.INVALID_CONFIG


class SecretKeyRequiredError(ConfigurationError):
    """Raised when a protected endpoint is used without a secret key"""

    default_code = ErrorCode.SECRET_KEY_REQUIRED

    def __init__(self, operation: str = "this operation"):
        self.operation = operation
        super().__init__(f"A secret key is required for {operation}")


class ValidationError(IcpayError):
    """Invalid request data"""

    default_code = ErrorCode.VALIDATION_ERROR


class WalletError(IcpayError):
    """Wallet-related error"""

    default_code = ErrorCode.WALLET_CONNECTION_FAILED


class WalletNotConnectedError(WalletError):
    """Raised when an operation needs a connected wallet and none is available"""

    default_code = ErrorCode.WALLET_NOT_CONNECTED

    def __init__(self, message: str = "Wallet is not connected"):
        super().__init__(message, user_action="Connect a wallet and try again")


class InsufficientBalanceError(IcpayError):
    """Raised when the payer holds less than the requested amount"""

    default_code = ErrorCode.INSUFFICIENT_BALANCE

    def __init__(
        self,
        ledger_canister_id: str,
        required: int,
        available: int,
        message: str | None = None,
    ):
        self.ledger_canister_id = ledger_canister_id
        self.required = required
        self.available = available
        super().__init__(
            message
            or f"Insufficient balance on ledger {ledger_canister_id}. "
            f"Required: {required}, Available: {available}",
            details={"required": str(required), "available": str(available)},
            user_action="Top up the wallet or choose a smaller amount",
        )


class BalanceCheckFailedError(IcpayError):
    """Raised when the balance query itself fails"""

    default_code = ErrorCode.BALANCE_CHECK_FAILED


class LedgerNotFoundError(IcpayError):
    """Raised when a ledger is not in the verified ledger list"""

    default_code = ErrorCode.LEDGER_NOT_FOUND

    def __init__(self, ledger: str):
        self.ledger = ledger
        super().__init__(f"Ledger {ledger} not found or not verified", details={"ledger": ledger})


class InvalidUsdAmountError(ValidationError):
    """USD amount is not a strictly positive finite number"""

    default_code = ErrorCode.INVALID_USD_AMOUNT


class PriceNotAvailableError(IcpayError):
    """No usable USD price for the requested ledger"""

    default_code = ErrorCode.PRICE_NOT_AVAILABLE

    def __init__(self, ledger_canister_id: str):
        self.ledger_canister_id = ledger_canister_id
        super().__init__(
            f"Price not available for ledger {ledger_canister_id}",
            details={"ledgerCanisterId": ledger_canister_id},
            retryable=True,
        )


class TransactionError(IcpayError):
    """Transaction-related error"""

    default_code = ErrorCode.TRANSACTION_FAILED


class TransactionFailedError(TransactionError):
    """Ledger transfer was rejected or could not be submitted

    ``ledger_error`` holds the parsed ledger rejection when there was one.
    """

    default_code = ErrorCode.TRANSACTION_FAILED

    def __init__(self, message: str, ledger_error: Any = None, **kwargs: Any):
        self.ledger_error = ledger_error
        kwargs.setdefault("details", ledger_error)
        super().__init__(message, **kwargs)


class TransactionSyncTriggerFailedError(TransactionError):
    """Backend could not be notified about a submitted transfer"""

    default_code = ErrorCode.TRANSACTION_SYNC_TRIGGER_FAILED


class TransactionStatusFetchFailedError(TransactionError):
    """Transaction status could not be read from the tracking service"""

    default_code = ErrorCode.TRANSACTION_STATUS_FETCH_FAILED


class TransactionTimeoutError(TransactionError):
    """Polling budget exhausted without observing a transaction status"""

    default_code = ErrorCode.TRANSACTION_TIMEOUT

    def __init__(self, transaction_id: Any, attempts: int):
        self.transaction_id = transaction_id
        self.attempts = attempts
        super().__init__(
            f"Transaction {transaction_id} status not available after {attempts} attempts",
            details={"transactionId": str(transaction_id), "attempts": attempts},
            retryable=True,
        )


class NetworkError(IcpayError):
    """Transport-level failure talking to the ICPay API or the network"""

    default_code = ErrorCode.NETWORK_ERROR

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)


class ApiError(IcpayError):
    """ICPay API answered with an error status"""

    default_code = ErrorCode.API_ERROR

    def __init__(
        self, message: str, status_code: int | None = None, data: Any = None, **kwargs: Any
    ):
        self.status_code = status_code
        self.data = data
        if status_code == 429:
            kwargs.setdefault("code", ErrorCode.RATE_LIMIT_EXCEEDED)
            kwargs.setdefault("retryable", True)
        kwargs.setdefault("details", {"status": status_code, "data": data})
        super().__init__(message, **kwargs)


class SignatureCreationError(IcpayError):
    """x402 authorization could not be signed"""

    default_code = ErrorCode.WALLET_SIGNATURE_REJECTED
