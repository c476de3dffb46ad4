"""
ApiPaymentGateway - payment intents and completion notices over the public API
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from icpay_sdk.clients.api_client import IcpayApiClient
from icpay_sdk.config import NetworkConfig
from icpay_sdk.exceptions import IcpayError, TransactionSyncTriggerFailedError
from icpay_sdk.types import (
    CreateTransactionRequest,
    PublicCreateIntentResponse,
    PublicNotifyResponse,
)

logger = logging.getLogger(__name__)

INTENTS_PATH = "/sdk/public/payments/intents"
NOTIFY_PATH = "/sdk/public/payments/notify"


async def trigger_transaction_sync(api: IcpayApiClient, canister_transaction_id: int | str) -> Any:
    """
    Ask the API to re-read a transaction from the tracking canister.

    Raises:
        TransactionSyncTriggerFailedError: If the API call fails
    """
    try:
        return await api.get(f"/sdk/public/transactions/{canister_transaction_id}/sync")
    except IcpayError as e:
        raise TransactionSyncTriggerFailedError(
            f"Failed to trigger sync for transaction {canister_transaction_id}",
            details=e.to_dict(),
            retryable=e.retryable,
        ) from e


class ApiPaymentGateway:
    """Creates payment intents and reports completed transfers to the API"""

    def __init__(
        self,
        api: IcpayApiClient,
        max_notify_attempts: int = NetworkConfig.DEFAULT_NOTIFY_MAX_ATTEMPTS,
        notify_delay: float = NetworkConfig.DEFAULT_NOTIFY_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._api = api
        self._max_notify_attempts = max_notify_attempts
        self._notify_delay = notify_delay
        self._sleep = sleep

    async def create_intent(self, request: CreateTransactionRequest) -> str | None:
        data = await self._api.post(
            INTENTS_PATH,
            json={
                "amount": str(request.amount),
                "ledgerCanisterId": request.ledger_canister_id,
                "metadata": request.metadata or {},
                **({"amountUsd": request.amount_usd} if request.amount_usd is not None else {}),
            },
        )
        intent = PublicCreateIntentResponse.model_validate(data or {})
        logger.info(f"Payment intent created: {intent.intent_id}")
        return intent.intent_id

    async def notify_payment(
        self, payment_intent_id: str | None, transaction_id: int | str
    ) -> PublicNotifyResponse | None:
        """
        Report a transfer to the API, retrying while the API has not indexed it.

        A transaction sync is requested between attempts. Returns None when
        every attempt failed.
        """
        for attempt in range(1, self._max_notify_attempts + 1):
            try:
                data = await self._api.post(
                    NOTIFY_PATH,
                    json={"paymentIntentId": payment_intent_id, "canisterTxId": transaction_id},
                )
                return PublicNotifyResponse.model_validate(data or {})
            except IcpayError as e:
                logger.info(f"Payment notify attempt {attempt} for {transaction_id} failed: {e}")

            try:
                await trigger_transaction_sync(self._api, transaction_id)
            except TransactionSyncTriggerFailedError as e:
                logger.debug(f"Sync trigger for {transaction_id} failed: {e}")
            if attempt < self._max_notify_attempts:
                await self._sleep(self._notify_delay)

        logger.warning(
            f"Payment notify for {transaction_id} failed after "
            f"{self._max_notify_attempts} attempts (non-fatal)"
        )
        return None
