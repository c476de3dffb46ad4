"""
StatusPoller - bounded polling of the tracking service for a terminal status
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from icpay_sdk.exceptions import TransactionTimeoutError
from icpay_sdk.payments.interfaces import TrackingFactory, TrackingService
from icpay_sdk.payments.status import normalize_status
from icpay_sdk.payments.variants import split_result
from icpay_sdk.types import BackendTransaction, TransactionFilter, TransactionStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-interval polling budget"""

    max_attempts: int = 30
    interval: float = 2.0
    deadline: float | None = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.interval < 0:
            raise ValueError("interval must not be negative")


@dataclass
class PollResult:
    """Outcome of a polling run"""

    transaction: BackendTransaction
    status: TransactionStatus
    attempts: int
    exhausted: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "transactionId": self.transaction.id,
            "status": self.status.value,
            "attempts": self.attempts,
            "exhausted": self.exhausted,
        }


def _unwrap_record(raw: Any) -> Mapping[str, Any] | None:
    """Accept a bare record, an optional as ``[]``/``[record]``, or ``{"Ok": record}``"""
    if raw is None:
        return None
    if isinstance(raw, (list, tuple)):
        return _unwrap_record(raw[0]) if raw else None
    ok, err = split_result(raw)
    if err is not None:
        return None
    if ok is raw:
        return raw if isinstance(raw, Mapping) else None
    return _unwrap_record(ok)


class StatusPoller:
    """
    Polls ``get_transaction`` until the record reaches Completed or Failed.

    When the primary lookup returns nothing, the transaction listing is
    searched for the same id. Query errors count as an attempt and are retried.
    """

    def __init__(
        self,
        tracking_factory: TrackingFactory,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._tracking_factory = tracking_factory
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._clock = clock

    async def lookup(
        self,
        canister_id: str,
        transaction_id: int | str,
        account_canister_id: int | None = None,
    ) -> BackendTransaction | None:
        """Single status lookup: direct query first, then the filtered listing"""
        service = self._tracking_factory(canister_id)
        record = _unwrap_record(await service.get_transaction(transaction_id))
        if record is None:
            record = await self._find_in_listing(service, transaction_id, account_canister_id)
        if record is None:
            return None
        return BackendTransaction.model_validate(dict(record))

    async def _find_in_listing(
        self,
        service: TrackingService,
        transaction_id: int | str,
        account_canister_id: int | None,
    ) -> Mapping[str, Any] | None:
        listing = await service.list_transactions(
            TransactionFilter(account_canister_id=account_canister_id)
        )
        ok, _ = split_result(listing)
        if not isinstance(ok, Mapping):
            return None
        for tx in ok.get("transactions") or []:
            if isinstance(tx, Mapping) and str(tx.get("id")) == str(transaction_id):
                logger.debug(f"Transaction {transaction_id} found through listing")
                return tx
        return None

    async def poll(
        self,
        canister_id: str,
        transaction_id: int | str,
        account_canister_id: int | None = None,
        policy: RetryPolicy | None = None,
    ) -> PollResult:
        """
        Poll until a terminal status or until the budget runs out.

        Returns:
            PollResult; ``exhausted`` is True when the budget ran out while the
            transaction was still pending

        Raises:
            TransactionTimeoutError: If no record was ever observed
        """
        policy = policy or self.policy
        started = self._clock()
        last_seen: BackendTransaction | None = None
        attempt = 0

        logger.info(
            f"Start polling transaction {transaction_id} "
            f"(max_attempts={policy.max_attempts}, interval={policy.interval}s)"
        )
        while attempt < policy.max_attempts:
            attempt += 1
            timeout = None
            if policy.deadline is not None:
                timeout = max(policy.deadline - (self._clock() - started), 0.0)
            try:
                record = await asyncio.wait_for(
                    self.lookup(canister_id, transaction_id, account_canister_id), timeout
                )
            except asyncio.TimeoutError:
                logger.warning(f"Status lookup {attempt} for {transaction_id} timed out")
                record = None
            except Exception as e:
                logger.warning(f"Status lookup {attempt} for {transaction_id} failed: {e}")
                record = None

            if record is not None:
                status = normalize_status(record.status)
                logger.debug(
                    f"Transaction {transaction_id}: attempt={attempt}, status={status.value}"
                )
                if status.is_terminal:
                    return PollResult(record, status, attempt)
                last_seen = record

            if attempt >= policy.max_attempts:
                break
            if (
                policy.deadline is not None
                and self._clock() - started + policy.interval > policy.deadline
            ):
                logger.info(f"Polling deadline of {policy.deadline}s reached for {transaction_id}")
                break
            await self._sleep(policy.interval)

        if last_seen is not None:
            logger.info(f"Transaction {transaction_id} still pending after {attempt} attempts")
            return PollResult(last_seen, TransactionStatus.PENDING, attempt, exhausted=True)
        raise TransactionTimeoutError(transaction_id, attempt)
