"""
TransactionOrchestrator - the send_funds pipeline

VALIDATING -> BALANCE_CHECKING -> SUBMITTING -> NOTIFYING -> POLLING -> DONE
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol, TypeVar

from icpay_sdk.cache import SessionCache
from icpay_sdk.events import IcpayEventCenter, IcpayEventName, OperationObserver
from icpay_sdk.exceptions import (
    IcpayError,
    InsufficientBalanceError,
    TransactionFailedError,
    ValidationError,
)
from icpay_sdk.ledgers.registry import LedgerRegistry
from icpay_sdk.payments.amounts import AmountNormalizer, format_balance
from icpay_sdk.payments.balance import BalanceResolver
from icpay_sdk.payments.notify import NotificationBridge
from icpay_sdk.payments.poller import StatusPoller
from icpay_sdk.payments.transfer import TransferSubmitter, encode_account_memo
from icpay_sdk.types import (
    CreateTransactionRequest,
    NotifyOutcome,
    PublicNotifyResponse,
    TransactionResponse,
    TransactionStatus,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

ACCOUNT_CANISTER_ID_KEY = "account_canister_id"
PLATFORM_CANISTER_ID_KEY = "platform_canister_id"


class SendFundsStage(str, Enum):
    VALIDATING = "validating"
    BALANCE_CHECKING = "balance_checking"
    SUBMITTING = "submitting"
    NOTIFYING = "notifying"
    POLLING = "polling"
    DONE = "done"


class PaymentGateway(Protocol):
    """Payment API bookkeeping around a transfer; both calls are best effort"""

    async def create_intent(self, request: CreateTransactionRequest) -> str | None: ...

    async def notify_payment(
        self, payment_intent_id: str | None, transaction_id: int | str
    ) -> PublicNotifyResponse | None: ...


class _NullObserver:
    def method_start(self, name: str, params: dict[str, Any] | None = None) -> None:
        pass

    def method_success(self, name: str, result: Any = None) -> None:
        pass

    def method_error(self, name: str, error: BaseException) -> None:
        pass


class TransactionOrchestrator:
    """
    Runs one payment end to end.

    Each call is an independent flow; concurrent calls share only the session
    cache. Notification and polling failures are downgraded to a ``pending``
    response keyed by the ledger block index. Everything before the transfer is
    fatal, and so is the transfer itself.
    """

    def __init__(
        self,
        resolver: BalanceResolver,
        normalizer: AmountNormalizer,
        submitter: TransferSubmitter,
        bridge: NotificationBridge,
        poller: StatusPoller,
        account_resolver: Callable[[], Awaitable[int]],
        platform_resolver: Callable[[], Awaitable[str]],
        cache: SessionCache | None = None,
        observer: OperationObserver | None = None,
        events: IcpayEventCenter | None = None,
        gateway: PaymentGateway | None = None,
        await_payment_notification: bool = True,
    ) -> None:
        self.resolver = resolver
        self.normalizer = normalizer
        self.submitter = submitter
        self.bridge = bridge
        self.poller = poller
        self.cache = cache or SessionCache()
        self._account_resolver = account_resolver
        self._platform_resolver = platform_resolver
        self._observer: OperationObserver = observer or _NullObserver()
        self._events = events
        self._gateway = gateway
        self._await_payment_notification = await_payment_notification
        self._background: set[asyncio.Task] = set()

    async def send_funds(self, request: CreateTransactionRequest) -> TransactionResponse:
        """
        Transfer ``request.amount`` base units to the ICPay platform and track it.

        Returns:
            TransactionResponse whose status is completed, failed or pending

        Raises:
            IcpayError: Exactly one typed error; unexpected failures are wrapped
                in TransactionFailedError
        """
        self._observer.method_start(
            "send_funds",
            {"ledgerCanisterId": request.ledger_canister_id, "amount": request.amount},
        )
        try:
            response = await self._run(request)
        except IcpayError as e:
            logger.error(f"send_funds failed: {e.code.value}: {e.message}")
            self._observer.method_error("send_funds", e)
            raise
        except Exception as e:
            logger.exception("send_funds failed unexpectedly")
            wrapped = TransactionFailedError(f"Failed to send funds: {e}", details=str(e))
            self._observer.method_error("send_funds", wrapped)
            raise wrapped from e

        self._observer.method_success("send_funds", response)
        return response

    async def _run(self, request: CreateTransactionRequest) -> TransactionResponse:
        ledger_canister_id = request.ledger_canister_id

        amount, account_canister_id, platform_canister_id = await self._stage(
            SendFundsStage.VALIDATING, self._validate, request
        )
        await self._stage(
            SendFundsStage.BALANCE_CHECKING, self._check_balance, ledger_canister_id, amount
        )

        payment_intent_id = await self._create_intent(request)

        memo = encode_account_memo(account_canister_id)
        block_index = await self._stage(
            SendFundsStage.SUBMITTING,
            self.submitter.submit,
            ledger_canister_id,
            platform_canister_id,
            amount,
            memo,
        )
        self._emit(
            IcpayEventName.TRANSACTION_CREATED,
            {
                "blockIndex": block_index,
                "ledgerCanisterId": ledger_canister_id,
                "amount": str(amount),
                "paymentIntentId": payment_intent_id,
            },
        )

        outcome = await self._notify(platform_canister_id, ledger_canister_id, block_index)
        tracking_id = outcome.transaction_id if outcome else block_index

        if outcome is not None and outcome.status is not None and outcome.status.is_terminal:
            status = outcome.status
            logger.info(f"Tracking service reported {status.value} for {tracking_id}")
        else:
            status = await self._poll(platform_canister_id, tracking_id, account_canister_id)

        payment = await self._notify_payment(payment_intent_id, tracking_id)

        response = TransactionResponse(
            transaction_id=tracking_id,
            status=status,
            amount=str(amount),
            recipient_canister=ledger_canister_id,
            timestamp=datetime.now(timezone.utc),
            block_index=block_index,
            description="Fund transfer",
            metadata=request.metadata,
            payment=payment,
        )
        self._emit_final(response)
        return response

    async def _stage(
        self, stage: SendFundsStage, func: Callable[..., Awaitable[T]], *args: Any
    ) -> T:
        name = f"send_funds.{stage.value}"
        self._observer.method_start(name)
        try:
            result = await func(*args)
        except Exception as e:
            self._observer.method_error(name, e)
            raise
        self._observer.method_success(name, result)
        return result

    async def _validate(self, request: CreateTransactionRequest) -> tuple[int, int, str]:
        amount = self.normalizer.normalize_base_units(request.amount)
        if request.account_canister_id not in (None, ""):
            try:
                account_canister_id = self.normalizer.normalize_base_units(
                    request.account_canister_id
                )
            except ValidationError as e:
                raise ValidationError(
                    "Account canister id must be a non-negative integer, "
                    f"got {request.account_canister_id!r}"
                ) from e
        else:
            account_canister_id = await self.cache.get_or_fetch(
                ACCOUNT_CANISTER_ID_KEY, self._account_resolver
            )
        platform_canister_id = await self.cache.get_or_fetch(
            PLATFORM_CANISTER_ID_KEY, self._platform_resolver
        )
        logger.debug(
            "Validated payment: amount=%s account=%s platform=%s",
            amount,
            account_canister_id,
            platform_canister_id,
        )
        return amount, account_canister_id, platform_canister_id

    async def _check_balance(self, ledger_canister_id: str, amount: int) -> int:
        available = await self.resolver.get_balance(ledger_canister_id)
        if available < amount:
            decimals = LedgerRegistry.get_decimals(ledger_canister_id)
            raise InsufficientBalanceError(
                ledger_canister_id,
                required=amount,
                available=available,
                message=(
                    "Insufficient token balance. "
                    f"Required: {format_balance(amount, decimals)}, "
                    f"Available: {format_balance(available, decimals)}"
                ),
            )
        logger.info(f"Balance ok: {available} >= {amount} on {ledger_canister_id}")
        return available

    async def _notify(
        self, platform_canister_id: str, ledger_canister_id: str, block_index: int
    ) -> NotifyOutcome | None:
        try:
            outcome = await self._stage(
                SendFundsStage.NOTIFYING,
                self.bridge.notify,
                platform_canister_id,
                ledger_canister_id,
                block_index,
            )
        except Exception as e:
            # The tracking service also indexes ledger blocks, so the block
            # index stays a valid lookup key.
            logger.warning(f"Notify failed, tracking by block index {block_index}: {e}")
            return None
        self._emit(
            IcpayEventName.TRANSACTION_UPDATED,
            {"transactionId": outcome.transaction_id, "blockIndex": block_index},
        )
        return outcome

    async def _poll(
        self, platform_canister_id: str, tracking_id: int | str, account_canister_id: int
    ) -> TransactionStatus:
        try:
            result = await self._stage(
                SendFundsStage.POLLING,
                self.poller.poll,
                platform_canister_id,
                tracking_id,
                account_canister_id,
            )
        except Exception as e:
            logger.warning(f"Polling {tracking_id} gave up, reporting pending: {e}")
            return TransactionStatus.PENDING
        return result.status

    async def _create_intent(self, request: CreateTransactionRequest) -> str | None:
        if self._gateway is None:
            return None
        try:
            return await self._gateway.create_intent(request)
        except Exception as e:
            logger.info(f"Payment intent not created, continuing without it: {e}")
            return None

    async def _notify_payment(
        self, payment_intent_id: str | None, tracking_id: int | str
    ) -> PublicNotifyResponse | None:
        if self._gateway is None:
            return None
        if not self._await_payment_notification:
            task = asyncio.create_task(self._safe_notify_payment(payment_intent_id, tracking_id))
            self._background.add(task)
            task.add_done_callback(self._background.discard)
            return None
        return await self._safe_notify_payment(payment_intent_id, tracking_id)

    async def _safe_notify_payment(
        self, payment_intent_id: str | None, tracking_id: int | str
    ) -> PublicNotifyResponse | None:
        try:
            payment = await self._gateway.notify_payment(payment_intent_id, tracking_id)
        except Exception as e:
            logger.warning(f"Payment notification for {tracking_id} failed (non-fatal): {e}")
            return None
        if payment is not None and payment.status == "mismatched":
            self._emit(IcpayEventName.TRANSACTION_MISMATCHED, payment.model_dump(by_alias=True))
        return payment

    async def drain(self) -> None:
        """Wait for background payment notifications to finish"""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    def _emit(self, name: IcpayEventName, detail: Any) -> None:
        if self._events is not None:
            self._events.emit(name, detail)

    def _emit_final(self, response: TransactionResponse) -> None:
        detail = response.model_dump(by_alias=True)
        if response.status is TransactionStatus.COMPLETED:
            self._emit(IcpayEventName.TRANSACTION_COMPLETED, detail)
        elif response.status is TransactionStatus.FAILED:
            self._emit(IcpayEventName.TRANSACTION_FAILED, detail)
        else:
            self._emit(IcpayEventName.TRANSACTION_UPDATED, detail)
