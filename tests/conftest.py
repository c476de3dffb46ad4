"""
Pytest configuration and fixtures
"""

from typing import Any

import pytest

from icpay_sdk.config import IcpayConfig
from icpay_sdk.types import TransactionFilter
from icpay_sdk.wallet.signers import ExternalWalletSigner

# Internet Computer ICP ledger principal
TEST_PRINCIPAL = "ryjl3-tyaaa-aaaaa-aaaba-cai"
TEST_LEDGER = "ryjl3-tyaaa-aaaaa-aaaba-cai"
TEST_PLATFORM_CANISTER = "rrkah-fqaaa-aaaaa-aaaaq-cai"


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakeLedger:
    """In-memory ICRC-1 ledger recording calls"""

    def __init__(self, balance: Any = 0, transfer_result: Any = 0) -> None:
        self.balance = balance
        self.transfer_result = transfer_result
        self.transfers: list[tuple[str, int, bytes | None]] = []
        self.balance_queries: list[str] = []

    async def transfer(self, to: str, amount: int, memo: bytes | None) -> Any:
        self.transfers.append((to, amount, memo))
        if isinstance(self.transfer_result, Exception):
            raise self.transfer_result
        return self.transfer_result

    async def balance_of(self, principal: str) -> Any:
        self.balance_queries.append(principal)
        if isinstance(self.balance, Exception):
            raise self.balance
        return self.balance


class FakeTracking:
    """In-memory tracking service

    ``records`` is consumed one lookup at a time; the last entry repeats.
    """

    def __init__(
        self,
        notify_result: Any = None,
        records: list[Any] | None = None,
        listing: Any = None,
    ) -> None:
        self.notify_result = notify_result
        self.records = list(records or [])
        self.listing = listing if listing is not None else {"transactions": []}
        self.notified: list[tuple[str, int]] = []
        self.lookups: list[Any] = []
        self.filters: list[TransactionFilter] = []

    async def notify_transfer(self, ledger_canister_id: str, block_index: int) -> Any:
        self.notified.append((ledger_canister_id, block_index))
        if isinstance(self.notify_result, Exception):
            raise self.notify_result
        return self.notify_result

    async def get_transaction(self, transaction_id: Any) -> Any:
        self.lookups.append(transaction_id)
        if not self.records:
            return None
        record = self.records.pop(0) if len(self.records) > 1 else self.records[0]
        if isinstance(record, Exception):
            raise record
        return record

    async def list_transactions(self, filter: TransactionFilter) -> Any:
        self.filters.append(filter)
        return self.listing


@pytest.fixture
def fake_ledger():
    return FakeLedger(balance=100_000_000, transfer_result={"Ok": 42})


@pytest.fixture
def fake_tracking():
    return FakeTracking(
        notify_result={"id": "tx-1", "status": {"Pending": None}},
        records=[{"id": "tx-1", "status": {"Completed": None}}],
    )


@pytest.fixture
def connected_signer():
    return ExternalWalletSigner(principal=TEST_PRINCIPAL)


@pytest.fixture
def public_config():
    return IcpayConfig(
        publishable_key="pk_test_123",
        api_url="https://api.test.icpay",
        icpay_canister_id=TEST_PLATFORM_CANISTER,
        poll_interval_seconds=0.01,
        poll_max_attempts=3,
    )


@pytest.fixture
def mock_evm_private_key():
    """Mock EVM private key for tests"""
    return "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"


@pytest.fixture
def make_ledger():
    return FakeLedger


@pytest.fixture
def make_tracking():
    return FakeTracking


@pytest.fixture
def sleep_calls():
    """Records requested sleeps without waiting"""
    calls: list[float] = []

    async def sleep(seconds: float) -> None:
        calls.append(seconds)

    sleep.calls = calls
    return sleep
