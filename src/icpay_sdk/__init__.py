"""
icpay_sdk - ICPay payments SDK for Python

Sends token payments on the Internet Computer to ICPay accounts, tracks their
confirmation, and wraps the ICPay REST API.
"""

__version__ = "0.1.0"

from icpay_sdk.types import (
    CreateTransactionRequest,
    SendFundsUsdRequest,
    PriceCalculationRequest,
    PriceCalculationResult,
    TransactionResponse,
    TransactionStatus,
    PublicAccountInfo,
    AccountInfo,
    VerifiedLedger,
    LedgerInfo,
    LedgerBalance,
    AllLedgerBalances,
)
from icpay_sdk.exceptions import (
    ErrorCode,
    IcpayError,
    ConfigurationError,
    SecretKeyRequiredError,
    ValidationError,
    WalletError,
    WalletNotConnectedError,
    InsufficientBalanceError,
    BalanceCheckFailedError,
    LedgerNotFoundError,
    InvalidUsdAmountError,
    PriceNotAvailableError,
    TransactionError,
    TransactionFailedError,
    TransactionSyncTriggerFailedError,
    TransactionStatusFetchFailedError,
    TransactionTimeoutError,
    NetworkError,
    ApiError,
    SignatureCreationError,
)
from icpay_sdk.config import IcpayConfig, NetworkConfig
from icpay_sdk.events import IcpayEventCenter, IcpayEventName
from icpay_sdk.clients import IcpayClient
from icpay_sdk.wallet import ExternalWalletSigner, IcpayWallet, WalletSigner
from icpay_sdk.ledgers import ICP_LEDGER_CANISTER_ID, LedgerRegistry

__all__ = [
    "__version__",
    # Client
    "IcpayClient",
    "IcpayConfig",
    "NetworkConfig",
    "IcpayEventCenter",
    "IcpayEventName",
    # Types
    "CreateTransactionRequest",
    "SendFundsUsdRequest",
    "PriceCalculationRequest",
    "PriceCalculationResult",
    "TransactionResponse",
    "TransactionStatus",
    "PublicAccountInfo",
    "AccountInfo",
    "VerifiedLedger",
    "LedgerInfo",
    "LedgerBalance",
    "AllLedgerBalances",
    # Exceptions
    "ErrorCode",
    "IcpayError",
    "ConfigurationError",
    "SecretKeyRequiredError",
    "ValidationError",
    "WalletError",
    "WalletNotConnectedError",
    "InsufficientBalanceError",
    "BalanceCheckFailedError",
    "LedgerNotFoundError",
    "InvalidUsdAmountError",
    "PriceNotAvailableError",
    "TransactionError",
    "TransactionFailedError",
    "TransactionSyncTriggerFailedError",
    "TransactionStatusFetchFailedError",
    "TransactionTimeoutError",
    "NetworkError",
    "ApiError",
    "SignatureCreationError",
    # Wallet
    "ExternalWalletSigner",
    "IcpayWallet",
    "WalletSigner",
    # Ledgers
    "ICP_LEDGER_CANISTER_ID",
    "LedgerRegistry",
]
