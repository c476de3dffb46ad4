"""
Transaction submission and confirmation pipeline
"""

from icpay_sdk.payments.amounts import AmountNormalizer, format_amount, format_balance
from icpay_sdk.payments.balance import BalanceResolver
from icpay_sdk.payments.interfaces import (
    LedgerActor,
    LedgerFactory,
    TrackingFactory,
    TrackingService,
)
from icpay_sdk.payments.notify import NotificationBridge
from icpay_sdk.payments.orchestrator import PaymentGateway, SendFundsStage, TransactionOrchestrator
from icpay_sdk.payments.poller import PollResult, RetryPolicy, StatusPoller
from icpay_sdk.payments.status import BackendStatus, normalize_status
from icpay_sdk.payments.transfer import TransferSubmitter, encode_account_memo, parse_ledger_error

__all__ = [
    "AmountNormalizer",
    "BackendStatus",
    "BalanceResolver",
    "LedgerActor",
    "LedgerFactory",
    "NotificationBridge",
    "PaymentGateway",
    "PollResult",
    "RetryPolicy",
    "SendFundsStage",
    "StatusPoller",
    "TrackingFactory",
    "TrackingService",
    "TransactionOrchestrator",
    "TransferSubmitter",
    "encode_account_memo",
    "format_amount",
    "format_balance",
    "normalize_status",
    "parse_ledger_error",
]
