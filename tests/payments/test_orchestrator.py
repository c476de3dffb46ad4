from unittest.mock import AsyncMock

import pytest

from icpay_sdk.cache import SessionCache
from icpay_sdk.events import IcpayEventCenter, IcpayEventName
from icpay_sdk.exceptions import (
    BalanceCheckFailedError,
    ErrorCode,
    InsufficientBalanceError,
    TransactionFailedError,
    ValidationError,
    WalletNotConnectedError,
)
from icpay_sdk.payments import (
    AmountNormalizer,
    BalanceResolver,
    NotificationBridge,
    RetryPolicy,
    StatusPoller,
    TransactionOrchestrator,
    TransferSubmitter,
    encode_account_memo,
)
from icpay_sdk.types import CreateTransactionRequest, PublicNotifyResponse, TransactionStatus

LEDGER = "ryjl3-tyaaa-aaaaa-aaaba-cai"
PLATFORM = "rrkah-fqaaa-aaaaa-aaaaq-cai"


def build(
    signer,
    ledger,
    tracking,
    sleep,
    account_canister_id=7,
    events=None,
    gateway=None,
    max_attempts=3,
    await_payment_notification=True,
):
    return TransactionOrchestrator(
        resolver=BalanceResolver(signer, lambda canister_id: ledger),
        normalizer=AmountNormalizer(),
        submitter=TransferSubmitter(lambda canister_id: ledger),
        bridge=NotificationBridge(lambda canister_id: tracking),
        poller=StatusPoller(
            lambda canister_id: tracking,
            RetryPolicy(max_attempts=max_attempts, interval=1.0),
            sleep=sleep,
        ),
        account_resolver=AsyncMock(return_value=account_canister_id),
        platform_resolver=AsyncMock(return_value=PLATFORM),
        cache=SessionCache(),
        observer=events,
        events=events,
        gateway=gateway,
        await_payment_notification=await_payment_notification,
    )


def request(amount="10000000", **kwargs):
    return CreateTransactionRequest(ledger_canister_id=LEDGER, amount=amount, **kwargs)


def record_events(center):
    seen = []
    for name in IcpayEventName:
        center.on(name, lambda detail, name=name: seen.append((name, detail)))
    return seen


@pytest.mark.anyio
async def test_completed_payment(connected_signer, make_ledger, make_tracking, sleep_calls):
    ledger = make_ledger(balance=100_000_000, transfer_result={"Ok": 42})
    tracking = make_tracking(
        notify_result={"id": "tx-1", "status": {"Pending": None}},
        records=[{"id": "tx-1", "status": {"Completed": None}}],
    )
    orchestrator = build(connected_signer, ledger, tracking, sleep_calls)

    response = await orchestrator.send_funds(request(metadata={"order": "A-1"}))

    assert response.status == TransactionStatus.COMPLETED
    assert response.transaction_id == "tx-1"
    assert response.block_index == 42
    assert response.amount == "10000000"
    assert response.recipient_canister == LEDGER
    assert response.metadata == {"order": "A-1"}
    assert ledger.transfers == [(PLATFORM, 10_000_000, encode_account_memo(7))]
    assert tracking.notified == [(LEDGER, 42)]
    assert tracking.lookups == ["tx-1"]


@pytest.mark.anyio
async def test_insufficient_balance_submits_nothing(
    connected_signer, make_ledger, make_tracking, sleep_calls
):
    ledger = make_ledger(balance=5_000_000, transfer_result={"Ok": 1})
    tracking = make_tracking()
    orchestrator = build(connected_signer, ledger, tracking, sleep_calls)

    with pytest.raises(InsufficientBalanceError) as exc:
        await orchestrator.send_funds(request("10000000"))

    assert exc.value.code == ErrorCode.INSUFFICIENT_BALANCE
    assert exc.value.details == {"required": "10000000", "available": "5000000"}
    assert "Required: 0.1, Available: 0.05" in exc.value.message
    assert ledger.transfers == []
    assert tracking.notified == []


@pytest.mark.anyio
async def test_exact_balance_is_enough(connected_signer, make_ledger, make_tracking, sleep_calls):
    ledger = make_ledger(balance=10_000_000, transfer_result={"Ok": 3})
    tracking = make_tracking(
        notify_result={"id": 3, "status": {"Completed": None}},
    )
    orchestrator = build(connected_signer, ledger, tracking, sleep_calls)

    response = await orchestrator.send_funds(request("10000000"))

    assert response.status == TransactionStatus.COMPLETED
    # terminal status from notify skips polling
    assert tracking.lookups == []


@pytest.mark.anyio
async def test_balance_query_failure_is_fatal(
    connected_signer, make_ledger, make_tracking, sleep_calls
):
    ledger = make_ledger(balance=ConnectionError("down"))
    orchestrator = build(connected_signer, ledger, make_tracking(), sleep_calls)

    with pytest.raises(BalanceCheckFailedError):
        await orchestrator.send_funds(request())
    assert ledger.transfers == []


@pytest.mark.anyio
async def test_notify_failure_tracks_by_block_index(
    connected_signer, make_ledger, make_tracking, sleep_calls
):
    ledger = make_ledger(balance=100_000_000, transfer_result={"Ok": 42})
    tracking = make_tracking(
        notify_result=ConnectionError("notify unavailable"),
        records=[{"id": 42, "status": {"Completed": None}}],
    )
    orchestrator = build(connected_signer, ledger, tracking, sleep_calls)

    response = await orchestrator.send_funds(request())

    assert response.transaction_id == 42
    assert response.status == TransactionStatus.COMPLETED
    assert tracking.lookups == [42]


@pytest.mark.anyio
async def test_malformed_notify_result_tracks_by_block_index(
    connected_signer, make_ledger, make_tracking, sleep_calls
):
    ledger = make_ledger(balance=100_000_000, transfer_result={"Ok": 42})
    tracking = make_tracking(
        notify_result={"id": 1.5},
        records=[{"id": 42, "status": {"Pending": None}}],
    )
    orchestrator = build(connected_signer, ledger, tracking, sleep_calls)

    response = await orchestrator.send_funds(request())

    assert response.status == TransactionStatus.PENDING
    assert response.transaction_id == 42
    assert response.block_index == 42
    assert len(ledger.transfers) == 1
    assert tracking.lookups == [42, 42, 42]


@pytest.mark.anyio
async def test_errors_after_transfer_report_pending(
    connected_signer, make_ledger, make_tracking, sleep_calls
):
    ledger = make_ledger(balance=100_000_000, transfer_result={"Ok": 42})
    orchestrator = build(connected_signer, ledger, make_tracking(), sleep_calls)
    orchestrator.bridge.notify = AsyncMock(side_effect=RuntimeError("decoder crashed"))
    orchestrator.poller.poll = AsyncMock(side_effect=KeyError("status"))

    response = await orchestrator.send_funds(request())

    assert response.status == TransactionStatus.PENDING
    assert response.transaction_id == 42
    assert len(ledger.transfers) == 1
    orchestrator.poller.poll.assert_awaited_once_with(PLATFORM, 42, 7)


@pytest.mark.anyio
async def test_poll_exhaustion_reports_pending(
    connected_signer, make_ledger, make_tracking, sleep_calls
):
    ledger = make_ledger(balance=100_000_000, transfer_result={"Ok": 42})
    tracking = make_tracking(
        notify_result={"id": "tx-1"},
        records=[{"id": "tx-1", "status": {"Pending": None}}],
    )
    orchestrator = build(connected_signer, ledger, tracking, sleep_calls, max_attempts=3)

    response = await orchestrator.send_funds(request())

    assert response.status == TransactionStatus.PENDING
    assert response.transaction_id == "tx-1"
    assert len(tracking.lookups) == 3


@pytest.mark.anyio
async def test_never_seen_reports_pending(
    connected_signer, make_ledger, make_tracking, sleep_calls
):
    ledger = make_ledger(balance=100_000_000, transfer_result={"Ok": 42})
    tracking = make_tracking(notify_result="tx-1", records=[None])
    orchestrator = build(connected_signer, ledger, tracking, sleep_calls)

    response = await orchestrator.send_funds(request())

    assert response.status == TransactionStatus.PENDING


@pytest.mark.anyio
async def test_failed_status(connected_signer, make_ledger, make_tracking, sleep_calls):
    ledger = make_ledger(balance=100_000_000, transfer_result={"Ok": 42})
    tracking = make_tracking(
        notify_result="tx-1", records=[{"id": "tx-1", "status": {"Failed": "mismatch"}}]
    )
    events = IcpayEventCenter()
    seen = record_events(events)
    orchestrator = build(connected_signer, ledger, tracking, sleep_calls, events=events)

    response = await orchestrator.send_funds(request())

    assert response.status == TransactionStatus.FAILED
    assert IcpayEventName.TRANSACTION_FAILED in [name for name, _ in seen]


@pytest.mark.anyio
async def test_ledger_rejection_propagates(
    connected_signer, make_ledger, make_tracking, sleep_calls
):
    ledger = make_ledger(
        balance=100_000_000, transfer_result={"Err": {"BadFee": {"expected_fee": 10000}}}
    )
    tracking = make_tracking()
    orchestrator = build(connected_signer, ledger, tracking, sleep_calls)

    with pytest.raises(TransactionFailedError) as exc:
        await orchestrator.send_funds(request())

    assert exc.value.ledger_error.kind == "BadFee"
    assert tracking.notified == []


@pytest.mark.anyio
async def test_wallet_required(make_ledger, make_tracking, sleep_calls):
    orchestrator = build(None, make_ledger(), make_tracking(), sleep_calls)

    with pytest.raises(WalletNotConnectedError):
        await orchestrator.send_funds(request())


@pytest.mark.anyio
@pytest.mark.parametrize("amount", ["-1", "1.5", "ten"])
async def test_invalid_amount(connected_signer, make_ledger, make_tracking, sleep_calls, amount):
    ledger = make_ledger(balance=100_000_000)
    orchestrator = build(connected_signer, ledger, make_tracking(), sleep_calls)

    with pytest.raises(ValidationError):
        await orchestrator.send_funds(request(amount))
    assert ledger.balance_queries == []


@pytest.mark.anyio
async def test_explicit_account_canister_id_sets_memo(
    connected_signer, make_ledger, make_tracking, sleep_calls
):
    ledger = make_ledger(balance=100_000_000, transfer_result={"Ok": 1})
    tracking = make_tracking(notify_result={"id": 1, "status": {"Completed": None}})
    orchestrator = build(connected_signer, ledger, tracking, sleep_calls)

    await orchestrator.send_funds(request(account_canister_id="0"))

    assert ledger.transfers[0][2] == b"\x00"
    orchestrator._account_resolver.assert_not_awaited()


@pytest.mark.anyio
@pytest.mark.parametrize("account_canister_id", ["-3", -3, "١٢", "abc", "1.5"])
async def test_invalid_account_canister_id(
    connected_signer, make_ledger, make_tracking, sleep_calls, account_canister_id
):
    ledger = make_ledger(balance=100_000_000, transfer_result={"Ok": 1})
    orchestrator = build(connected_signer, ledger, make_tracking(), sleep_calls)

    with pytest.raises(ValidationError) as exc:
        await orchestrator.send_funds(request(account_canister_id=account_canister_id))

    assert "Account canister id" in exc.value.message
    assert ledger.balance_queries == []
    assert ledger.transfers == []


@pytest.mark.anyio
async def test_platform_id_resolved_once(
    connected_signer, make_ledger, make_tracking, sleep_calls
):
    ledger = make_ledger(balance=100_000_000, transfer_result={"Ok": 1})
    tracking = make_tracking(notify_result={"id": 1, "status": {"Completed": None}})
    orchestrator = build(connected_signer, ledger, tracking, sleep_calls)

    await orchestrator.send_funds(request())
    await orchestrator.send_funds(request())

    orchestrator._platform_resolver.assert_awaited_once()
    orchestrator._account_resolver.assert_awaited_once()


@pytest.mark.anyio
async def test_unexpected_error_is_wrapped(
    connected_signer, make_ledger, make_tracking, sleep_calls
):
    ledger = make_ledger(balance=100_000_000)
    orchestrator = build(connected_signer, ledger, make_tracking(), sleep_calls)
    orchestrator._platform_resolver.side_effect = RuntimeError("boom")

    with pytest.raises(TransactionFailedError) as exc:
        await orchestrator.send_funds(request())
    assert "boom" in exc.value.message


@pytest.mark.anyio
async def test_lifecycle_events(connected_signer, make_ledger, make_tracking, sleep_calls):
    ledger = make_ledger(balance=100_000_000, transfer_result={"Ok": 42})
    tracking = make_tracking(
        notify_result={"id": "tx-1"},
        records=[{"id": "tx-1", "status": {"Completed": None}}],
    )
    events = IcpayEventCenter()
    seen = record_events(events)
    orchestrator = build(connected_signer, ledger, tracking, sleep_calls, events=events)

    await orchestrator.send_funds(request())

    names = [name for name, _ in seen]
    assert names[0] == IcpayEventName.METHOD_START
    assert IcpayEventName.TRANSACTION_CREATED in names
    assert names[-2:] == [IcpayEventName.TRANSACTION_COMPLETED, IcpayEventName.METHOD_SUCCESS]
    stages = [
        detail["name"] for name, detail in seen if name == IcpayEventName.METHOD_START
    ]
    assert stages == [
        "send_funds",
        "send_funds.validating",
        "send_funds.balance_checking",
        "send_funds.submitting",
        "send_funds.notifying",
        "send_funds.polling",
    ]


@pytest.mark.anyio
async def test_error_events(connected_signer, make_ledger, make_tracking, sleep_calls):
    events = IcpayEventCenter()
    seen = record_events(events)
    orchestrator = build(
        connected_signer, make_ledger(balance=1), make_tracking(), sleep_calls, events=events
    )

    with pytest.raises(InsufficientBalanceError):
        await orchestrator.send_funds(request())

    errors = [detail for name, detail in seen if name == IcpayEventName.METHOD_ERROR]
    assert [e["name"] for e in errors] == ["send_funds.balance_checking", "send_funds"]
    assert errors[-1]["code"] == "INSUFFICIENT_BALANCE"


@pytest.mark.anyio
async def test_payment_gateway_called(connected_signer, make_ledger, make_tracking, sleep_calls):
    ledger = make_ledger(balance=100_000_000, transfer_result={"Ok": 42})
    tracking = make_tracking(notify_result={"id": "tx-1", "status": {"Completed": None}})
    gateway = AsyncMock()
    gateway.create_intent.return_value = "pi_1"
    gateway.notify_payment.return_value = PublicNotifyResponse(
        payment_id="pay_1", status="mismatched"
    )
    events = IcpayEventCenter()
    seen = record_events(events)
    orchestrator = build(
        connected_signer, ledger, tracking, sleep_calls, events=events, gateway=gateway
    )

    response = await orchestrator.send_funds(request())

    gateway.notify_payment.assert_awaited_once_with("pi_1", "tx-1")
    assert response.payment.payment_id == "pay_1"
    assert IcpayEventName.TRANSACTION_MISMATCHED in [name for name, _ in seen]


@pytest.mark.anyio
async def test_payment_gateway_failures_are_not_fatal(
    connected_signer, make_ledger, make_tracking, sleep_calls
):
    ledger = make_ledger(balance=100_000_000, transfer_result={"Ok": 42})
    tracking = make_tracking(notify_result={"id": "tx-1", "status": {"Completed": None}})
    gateway = AsyncMock()
    gateway.create_intent.side_effect = RuntimeError("api down")
    gateway.notify_payment.side_effect = RuntimeError("api down")
    orchestrator = build(connected_signer, ledger, tracking, sleep_calls, gateway=gateway)

    response = await orchestrator.send_funds(request())

    assert response.status == TransactionStatus.COMPLETED
    assert response.payment is None
    gateway.notify_payment.assert_awaited_once_with(None, "tx-1")


@pytest.mark.anyio
async def test_background_payment_notification(
    connected_signer, make_ledger, make_tracking, sleep_calls
):
    ledger = make_ledger(balance=100_000_000, transfer_result={"Ok": 42})
    tracking = make_tracking(notify_result={"id": "tx-1", "status": {"Completed": None}})
    gateway = AsyncMock()
    gateway.create_intent.return_value = "pi_1"
    orchestrator = build(
        connected_signer,
        ledger,
        tracking,
        sleep_calls,
        gateway=gateway,
        await_payment_notification=False,
    )

    response = await orchestrator.send_funds(request())
    await orchestrator.drain()

    assert response.payment is None
    gateway.notify_payment.assert_awaited_once_with("pi_1", "tx-1")
