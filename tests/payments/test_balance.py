import pytest

from icpay_sdk.exceptions import (
    BalanceCheckFailedError,
    ErrorCode,
    WalletNotConnectedError,
)
from icpay_sdk.payments.balance import BalanceResolver
from icpay_sdk.wallet.signers import ExternalWalletSigner

PRINCIPAL = "ryjl3-tyaaa-aaaaa-aaaba-cai"


def test_resolve_principal(connected_signer):
    resolver = BalanceResolver(connected_signer, lambda canister_id: None)
    assert resolver.resolve_principal() == PRINCIPAL


def test_resolve_principal_requires_wallet():
    resolver = BalanceResolver(None, lambda canister_id: None)
    with pytest.raises(WalletNotConnectedError) as exc:
        resolver.resolve_principal()
    assert exc.value.code == ErrorCode.WALLET_NOT_CONNECTED


def test_resolve_principal_disconnected_signer():
    signer = ExternalWalletSigner(principal=PRINCIPAL, connected=False)
    resolver = BalanceResolver(signer, lambda canister_id: None)
    with pytest.raises(WalletNotConnectedError):
        resolver.resolve_principal()


@pytest.mark.anyio
async def test_balance_is_read_fresh_each_time(connected_signer, make_ledger):
    ledger = make_ledger(balance=5_000_000)
    resolver = BalanceResolver(connected_signer, lambda canister_id: ledger)

    first = await resolver.get_balance("ledger")
    second = await resolver.get_balance("ledger")

    assert first == second == 5_000_000
    assert ledger.balance_queries == [PRINCIPAL, PRINCIPAL]


@pytest.mark.anyio
async def test_balance_queries_requested_ledger(connected_signer, make_ledger):
    seen = []
    ledger = make_ledger(balance=1)

    def factory(canister_id):
        seen.append(canister_id)
        return ledger

    resolver = BalanceResolver(connected_signer, factory)
    await resolver.get_balance("mxzaw-hiaaa-aaaar-qaada-cai")

    assert seen == ["mxzaw-hiaaa-aaaar-qaada-cai"]


@pytest.mark.anyio
async def test_balance_for_explicit_principal_needs_no_wallet(make_ledger):
    ledger = make_ledger(balance="77")
    resolver = BalanceResolver(None, lambda canister_id: ledger)

    assert await resolver.get_balance("ledger", "aaaaa-aa") == 77
    assert ledger.balance_queries == ["aaaaa-aa"]


@pytest.mark.anyio
async def test_ledger_error_is_reported_not_zero(connected_signer, make_ledger):
    ledger = make_ledger(balance=TimeoutError("query timed out"))
    resolver = BalanceResolver(connected_signer, lambda canister_id: ledger)

    with pytest.raises(BalanceCheckFailedError) as exc:
        await resolver.get_balance("ledger")

    assert exc.value.code == ErrorCode.BALANCE_CHECK_FAILED
    assert exc.value.retryable


@pytest.mark.anyio
@pytest.mark.parametrize("raw", [None, "lots", -1, True, {"Err": "denied"}, [1]])
async def test_malformed_balance(connected_signer, make_ledger, raw):
    ledger = make_ledger(balance=raw)
    resolver = BalanceResolver(connected_signer, lambda canister_id: ledger)

    with pytest.raises(BalanceCheckFailedError):
        await resolver.get_balance("ledger")


@pytest.mark.anyio
async def test_snapshot(connected_signer, make_ledger):
    ledgers = {"a": make_ledger(balance=1), "b": make_ledger(balance=2)}
    resolver = BalanceResolver(connected_signer, ledgers.__getitem__)

    snapshot = await resolver.snapshot(["a", "b"])

    assert snapshot.principal == PRINCIPAL
    assert snapshot.balances == {"a": 1, "b": 2}


@pytest.mark.anyio
async def test_signer_can_be_swapped(make_ledger):
    resolver = BalanceResolver(None, lambda canister_id: make_ledger(balance=9))
    resolver.signer = ExternalWalletSigner(principal=PRINCIPAL)

    assert await resolver.get_balance("ledger") == 9
