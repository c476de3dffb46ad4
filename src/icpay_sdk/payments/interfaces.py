"""
Protocols for the on-chain collaborators of the payment pipeline
"""

from collections.abc import Callable, Mapping
from typing import Any, Protocol

from icpay_sdk.types import TransactionFilter


class LedgerActor(Protocol):
    """ICRC-1 ledger canister"""

    async def transfer(self, to: str, amount: int, memo: bytes | None) -> Any:
        """
        Submit an ICRC-1 transfer from the connected identity.

        Returns:
            The block index, either bare or as ``{"Ok": index}``; a rejection
            is returned as ``{"Err": {variant: payload}}``
        """
        ...

    async def balance_of(self, principal: str) -> int:
        """Read-only balance query for the default subaccount of ``principal``"""
        ...


class TrackingService(Protocol):
    """ICPay tracking canister, queried anonymously"""

    async def notify_transfer(self, ledger_canister_id: str, block_index: int) -> Any:
        """
        Ask the tracking service to record a ledger block.

        Returns:
            ``{"id": ..., "status": ..., "amount": ...}``, optionally wrapped in
            ``{"Ok": ...}``; ``{"Err": reason}`` on rejection
        """
        ...

    async def get_transaction(self, transaction_id: int | str) -> Mapping[str, Any] | None:
        """Return the transaction record, or None if it is not known yet"""
        ...

    async def list_transactions(self, filter: TransactionFilter) -> Mapping[str, Any]:
        """Return ``{"transactions": [...], "total_count": int, "has_more": bool}``"""
        ...


LedgerFactory = Callable[[str], LedgerActor]
TrackingFactory = Callable[[str], TrackingService]
