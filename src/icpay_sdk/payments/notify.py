"""
NotificationBridge - tells the tracking service about a submitted transfer
"""

import logging
from collections.abc import Mapping

import pydantic

from icpay_sdk.exceptions import TransactionSyncTriggerFailedError
from icpay_sdk.payments.interfaces import TrackingFactory
from icpay_sdk.payments.status import normalize_status
from icpay_sdk.payments.variants import split_result
from icpay_sdk.types import NotifyOutcome

logger = logging.getLogger(__name__)


class NotificationBridge:
    """Anonymous ``notify_transfer`` call against the tracking canister"""

    def __init__(self, tracking_factory: TrackingFactory) -> None:
        self._tracking_factory = tracking_factory

    async def notify(
        self, canister_id: str, ledger_canister_id: str, block_index: int
    ) -> NotifyOutcome:
        """
        Notify the tracking service of ``block_index`` on ``ledger_canister_id``.

        Returns:
            NotifyOutcome with the backend transaction id and, when the service
            reported one, its status

        Raises:
            TransactionSyncTriggerFailedError: If the call fails or is rejected
        """
        logger.info(f"Notifying {canister_id} of block {block_index} on {ledger_canister_id}")
        try:
            service = self._tracking_factory(canister_id)
            raw = await service.notify_transfer(ledger_canister_id, block_index)
        except Exception as e:
            logger.warning(f"Notification of block {block_index} failed: {e}")
            raise TransactionSyncTriggerFailedError(
                f"Failed to notify tracking service of block {block_index}: {e}",
                details={"blockIndex": block_index, "ledgerCanisterId": ledger_canister_id},
                retryable=True,
            ) from e

        ok, err = split_result(raw)
        if err is not None:
            raise TransactionSyncTriggerFailedError(
                f"Tracking service rejected block {block_index}: {err}",
                details={"blockIndex": block_index, "error": err},
            )
        return self._parse_outcome(ok, block_index)

    @staticmethod
    def _parse_outcome(ok: object, block_index: int) -> NotifyOutcome:
        if isinstance(ok, (int, str)) and not isinstance(ok, bool):
            return NotifyOutcome(transaction_id=ok, raw=ok)

        if not isinstance(ok, Mapping) or ok.get("id") is None:
            raise TransactionSyncTriggerFailedError(
                f"Unexpected notify result for block {block_index}: {ok!r}",
                details={"blockIndex": block_index},
            )

        raw_status = ok.get("status")
        amount = ok.get("amount")
        try:
            return NotifyOutcome(
                transaction_id=ok["id"],
                status=normalize_status(raw_status) if raw_status is not None else None,
                amount=amount if isinstance(amount, int) else None,
                raw=dict(ok),
            )
        except pydantic.ValidationError as e:
            raise TransactionSyncTriggerFailedError(
                f"Malformed notify result for block {block_index}: {ok!r}",
                details={"blockIndex": block_index},
            ) from e
