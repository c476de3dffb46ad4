"""
BalanceResolver - connected identity and ledger balances
"""

import logging
from datetime import datetime, timezone
from typing import Any

from icpay_sdk.exceptions import BalanceCheckFailedError, WalletNotConnectedError
from icpay_sdk.payments.interfaces import LedgerFactory
from icpay_sdk.payments.variants import split_result
from icpay_sdk.types import BalanceSnapshot
from icpay_sdk.wallet.signers import WalletSigner

logger = logging.getLogger(__name__)


def _coerce_balance(ledger_canister_id: str, raw: Any) -> int:
    ok, err = split_result(raw)
    if err is not None:
        raise BalanceCheckFailedError(
            f"Ledger {ledger_canister_id} rejected the balance query: {err}", details=err
        )
    if isinstance(ok, bool) or not isinstance(ok, (int, str)):
        raise BalanceCheckFailedError(
            f"Malformed balance from ledger {ledger_canister_id}: {ok!r}", details=ok
        )
    try:
        value = int(ok)
    except ValueError as e:
        raise BalanceCheckFailedError(
            f"Malformed balance from ledger {ledger_canister_id}: {ok!r}", details=ok
        ) from e
    if value < 0:
        raise BalanceCheckFailedError(
            f"Negative balance from ledger {ledger_canister_id}: {value}", details=ok
        )
    return value


class BalanceResolver:
    """
    Resolves the connected principal and reads its balances.

    Balances are read straight from the ledger on every call and never cached.
    """

    def __init__(self, signer: WalletSigner | None, ledger_factory: LedgerFactory) -> None:
        self._signer = signer
        self._ledger_factory = ledger_factory

    @property
    def signer(self) -> WalletSigner | None:
        return self._signer

    @signer.setter
    def signer(self, signer: WalletSigner | None) -> None:
        self._signer = signer

    def resolve_principal(self) -> str:
        """
        Principal text of the connected wallet.

        Raises:
            WalletNotConnectedError: If no wallet is connected
        """
        if self._signer is None or not self._signer.is_connected():
            raise WalletNotConnectedError()
        principal = self._signer.get_principal()
        if not principal:
            raise WalletNotConnectedError("Connected wallet did not expose a principal")
        return principal

    async def get_balance(self, ledger_canister_id: str, principal: str | None = None) -> int:
        """
        Balance of ``principal`` (the connected wallet by default) in base units.

        Raises:
            WalletNotConnectedError: If no principal is given and no wallet is connected
            BalanceCheckFailedError: If the ledger query fails or returns garbage
        """
        owner = principal or self.resolve_principal()
        logger.debug(f"Querying balance of {owner} on ledger {ledger_canister_id}")
        try:
            ledger = self._ledger_factory(ledger_canister_id)
            raw = await ledger.balance_of(owner)
        except BalanceCheckFailedError:
            raise
        except Exception as e:
            logger.warning(f"Balance query on ledger {ledger_canister_id} failed: {e}")
            raise BalanceCheckFailedError(
                f"Failed to check balance on ledger {ledger_canister_id}: {e}",
                details={"ledgerCanisterId": ledger_canister_id},
                retryable=True,
            ) from e
        return _coerce_balance(ledger_canister_id, raw)

    async def snapshot(self, ledger_canister_ids: list[str]) -> BalanceSnapshot:
        """Fresh balances of the connected wallet for each of ``ledger_canister_ids``"""
        principal = self.resolve_principal()
        balances = {}
        for ledger_canister_id in ledger_canister_ids:
            balances[ledger_canister_id] = await self.get_balance(ledger_canister_id, principal)
        return BalanceSnapshot(
            principal=principal, balances=balances, fetched_at=datetime.now(timezone.utc)
        )
