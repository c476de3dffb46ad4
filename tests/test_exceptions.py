"""
Tests for the ICPay error hierarchy
"""

from icpay_sdk.exceptions import (
    ApiError,
    ErrorCode,
    IcpayError,
    InsufficientBalanceError,
    InvalidUsdAmountError,
    TransactionFailedError,
    TransactionTimeoutError,
    ValidationError,
    WalletNotConnectedError,
)


def test_default_codes():
    assert IcpayError("x").code == ErrorCode.UNKNOWN_ERROR
    assert WalletNotConnectedError().code == ErrorCode.WALLET_NOT_CONNECTED
    assert InvalidUsdAmountError("x").code == ErrorCode.INVALID_USD_AMOUNT
    assert isinstance(InvalidUsdAmountError("x"), ValidationError)


def test_explicit_code_accepts_string():
    error = IcpayError("x", code="LEDGER_NOT_FOUND")

    assert error.code is ErrorCode.LEDGER_NOT_FOUND


def test_classification_helpers():
    assert WalletNotConnectedError().is_wallet_error()
    assert InsufficientBalanceError("ledger", 10, 5).is_balance_error()
    assert ApiError("down", status_code=500).is_network_error()
    assert IcpayError("x", code=ErrorCode.WALLET_USER_CANCELLED).is_user_cancelled()


def test_insufficient_balance_details():
    error = InsufficientBalanceError("ledger", required=10, available=5)

    assert error.details == {"required": "10", "available": "5"}
    assert "Required: 10, Available: 5" in error.message
    assert error.user_action


def test_rate_limit_is_retryable():
    error = ApiError("slow down", status_code=429)

    assert error.code == ErrorCode.RATE_LIMIT_EXCEEDED
    assert error.is_retryable()
    assert not ApiError("bad request", status_code=400).is_retryable()


def test_transaction_errors():
    failed = TransactionFailedError("rejected", ledger_error={"InsufficientFunds": {}})
    timeout = TransactionTimeoutError("tx-1", attempts=3)

    assert failed.details == {"InsufficientFunds": {}}
    assert timeout.details == {"transactionId": "tx-1", "attempts": 3}
    assert timeout.retryable


def test_to_dict():
    data = WalletNotConnectedError().to_dict()

    assert data == {
        "code": "WALLET_NOT_CONNECTED",
        "message": "Wallet is not connected",
        "details": None,
        "retryable": False,
        "userAction": "Connect a wallet and try again",
    }
