"""
ProtectedApi - secret-key endpoints of the ICPay API
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from icpay_sdk.clients.api_client import IcpayApiClient
from icpay_sdk.events import OperationObserver
from icpay_sdk.exceptions import ErrorCode, IcpayError, SecretKeyRequiredError
from icpay_sdk.types import (
    AccountInfo,
    AllLedgerBalances,
    GetPaymentsByPrincipalRequest,
    LedgerInfo,
    PaymentHistoryRequest,
    PaymentHistoryResponse,
    SdkInvoice,
    SdkPaymentAggregate,
    SdkPaymentIntent,
    SdkTransaction,
    SdkWallet,
    SdkWebhookEvent,
    TransactionHistoryResponse,
    TransactionStatusResponse,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _history_params(request: PaymentHistoryRequest) -> dict[str, Any]:
    return {
        "accountId": request.account_id,
        "ledgerCanisterId": request.ledger_canister_id,
        "fromTimestamp": request.from_timestamp.isoformat() if request.from_timestamp else None,
        "toTimestamp": request.to_timestamp.isoformat() if request.to_timestamp else None,
        "status": request.status.value if request.status else None,
        "limit": request.limit,
        "offset": request.offset,
    }


class ProtectedApi:
    """
    Endpoints that require the account's secret key.

    Every method raises SecretKeyRequiredError when the SDK was configured
    without a secret key.
    """

    def __init__(self, api_client: IcpayApiClient | None, observer: OperationObserver) -> None:
        self._client = api_client
        self._observer = observer

    def _require_secret_key(self, method: str) -> IcpayApiClient:
        if self._client is None:
            raise SecretKeyRequiredError(method)
        return self._client

    async def _call(
        self,
        method: str,
        fetch: Callable[[IcpayApiClient], Awaitable[T]],
        params: dict[str, Any] | None = None,
        error_code: ErrorCode | None = None,
        error_message: str | None = None,
    ) -> T:
        client = self._require_secret_key(method)
        self._observer.method_start(method, params)
        try:
            result = await fetch(client)
        except Exception as e:
            error: BaseException = e
            if error_code is None and not isinstance(e, IcpayError):
                error_code = ErrorCode.API_ERROR
            if error_code is not None:
                error = IcpayError(
                    error_message or f"{method} failed",
                    code=error_code,
                    details=e.to_dict() if isinstance(e, IcpayError) else str(e),
                    retryable=getattr(e, "retryable", False),
                )
            self._observer.method_error(method, error)
            if error is e:
                raise
            raise error from e
        self._observer.method_success(method, result)
        return result

    async def get_detailed_account_info(self) -> AccountInfo:
        async def fetch(client: IcpayApiClient) -> AccountInfo:
            return AccountInfo.model_validate(await client.get("/sdk/account"))

        return await self._call(
            "get_detailed_account_info",
            fetch,
            error_code=ErrorCode.ACCOUNT_INFO_FETCH_FAILED,
            error_message="Failed to fetch detailed account information",
        )

    async def get_transaction_status(
        self, canister_transaction_id: int
    ) -> TransactionStatusResponse:
        async def fetch(client: IcpayApiClient) -> TransactionStatusResponse:
            data = await client.get(f"/sdk/transactions/{canister_transaction_id}/status")
            return TransactionStatusResponse.model_validate(data)

        return await self._call(
            "get_transaction_status",
            fetch,
            {"canisterTransactionId": canister_transaction_id},
            ErrorCode.TRANSACTION_STATUS_FETCH_FAILED,
            "Failed to fetch transaction status",
        )

    async def get_transaction_history(
        self, request: PaymentHistoryRequest | None = None
    ) -> TransactionHistoryResponse:
        request = request or PaymentHistoryRequest()

        async def fetch(client: IcpayApiClient) -> TransactionHistoryResponse:
            data = await client.get("/sdk/transactions/history", params=_history_params(request))
            return TransactionHistoryResponse.model_validate(data)

        return await self._call(
            "get_transaction_history",
            fetch,
            request.model_dump(by_alias=True, exclude_none=True),
            ErrorCode.TRANSACTION_HISTORY_FETCH_FAILED,
            "Failed to fetch transaction history",
        )

    async def get_payment_history(
        self, request: PaymentHistoryRequest | None = None
    ) -> PaymentHistoryResponse:
        request = request or PaymentHistoryRequest()

        async def fetch(client: IcpayApiClient) -> PaymentHistoryResponse:
            data = await client.get("/sdk/payments/history", params=_history_params(request))
            return PaymentHistoryResponse.model_validate(data)

        return await self._call(
            "get_payment_history",
            fetch,
            request.model_dump(by_alias=True, exclude_none=True),
            ErrorCode.PAYMENT_HISTORY_FETCH_FAILED,
            "Failed to fetch payment history",
        )

    async def get_payments_by_principal(
        self, request: GetPaymentsByPrincipalRequest
    ) -> PaymentHistoryResponse:
        async def fetch(client: IcpayApiClient) -> PaymentHistoryResponse:
            data = await client.get(
                f"/sdk/payments/by-principal/{request.principal_id}",
                params={
                    "limit": request.limit,
                    "offset": request.offset,
                    "status": request.status.value if request.status else None,
                },
            )
            return PaymentHistoryResponse.model_validate(data)

        return await self._call(
            "get_payments_by_principal",
            fetch,
            request.model_dump(by_alias=True, exclude_none=True),
            ErrorCode.PAYMENT_HISTORY_FETCH_FAILED,
            "Failed to fetch payments by principal",
        )

    async def get_account_wallet_balances(self) -> AllLedgerBalances:
        async def fetch(client: IcpayApiClient) -> AllLedgerBalances:
            return AllLedgerBalances.model_validate(
                await client.get("/sdk/account/wallet-balances")
            )

        return await self._call(
            "get_account_wallet_balances",
            fetch,
            error_code=ErrorCode.ACCOUNT_WALLET_BALANCES_FETCH_FAILED,
            error_message="Failed to fetch account wallet balances",
        )

    async def get_payment_by_id(self, payment_id: str) -> SdkPaymentAggregate:
        async def fetch(client: IcpayApiClient) -> SdkPaymentAggregate:
            data = await client.get(f"/sdk/payments/{payment_id}")
            return SdkPaymentAggregate.model_validate(data)

        return await self._call("get_payment_by_id", fetch, {"id": payment_id})

    async def list_payments(self) -> list[SdkPaymentAggregate]:
        async def fetch(client: IcpayApiClient) -> list[SdkPaymentAggregate]:
            data = await client.get("/sdk/payments")
            return [SdkPaymentAggregate.model_validate(item) for item in data or []]

        return await self._call("list_payments", fetch)

    async def get_payment_intent_by_id(self, intent_id: str) -> SdkPaymentIntent:
        async def fetch(client: IcpayApiClient) -> SdkPaymentIntent:
            return SdkPaymentIntent.model_validate(
                await client.get(f"/sdk/payment-intents/{intent_id}")
            )

        return await self._call("get_payment_intent_by_id", fetch, {"id": intent_id})

    async def get_invoice_by_id(self, invoice_id: str) -> SdkInvoice:
        async def fetch(client: IcpayApiClient) -> SdkInvoice:
            return SdkInvoice.model_validate(await client.get(f"/sdk/invoices/{invoice_id}"))

        return await self._call("get_invoice_by_id", fetch, {"id": invoice_id})

    async def get_transaction_by_id(self, transaction_id: str) -> SdkTransaction:
        async def fetch(client: IcpayApiClient) -> SdkTransaction:
            return SdkTransaction.model_validate(
                await client.get(f"/sdk/transactions/{transaction_id}")
            )

        return await self._call("get_transaction_by_id", fetch, {"id": transaction_id})

    async def get_wallet_by_id(self, wallet_id: str) -> SdkWallet:
        async def fetch(client: IcpayApiClient) -> SdkWallet:
            return SdkWallet.model_validate(await client.get(f"/sdk/wallets/{wallet_id}"))

        return await self._call("get_wallet_by_id", fetch, {"id": wallet_id})

    async def get_verified_ledgers_private(self) -> list[LedgerInfo]:
        async def fetch(client: IcpayApiClient) -> list[LedgerInfo]:
            data = await client.get("/sdk/ledgers/verified")
            return [LedgerInfo.model_validate(item) for item in data or []]

        return await self._call("get_verified_ledgers_private", fetch)

    async def get_all_ledgers_with_prices_private(self) -> list[LedgerInfo]:
        async def fetch(client: IcpayApiClient) -> list[LedgerInfo]:
            data = await client.get("/sdk/ledgers/all-with-prices")
            return [LedgerInfo.model_validate(item) for item in data or []]

        return await self._call("get_all_ledgers_with_prices_private", fetch)

    async def get_ledger_info_private(self, id_or_canister_id: str) -> LedgerInfo:
        async def fetch(client: IcpayApiClient) -> LedgerInfo:
            return LedgerInfo.model_validate(await client.get(f"/sdk/ledgers/{id_or_canister_id}"))

        return await self._call("get_ledger_info_private", fetch, {"id": id_or_canister_id})

    async def get_webhook_event_by_id(self, event_id: str) -> SdkWebhookEvent:
        async def fetch(client: IcpayApiClient) -> SdkWebhookEvent:
            return SdkWebhookEvent.model_validate(
                await client.get(f"/sdk/webhook-events/{event_id}")
            )

        return await self._call("get_webhook_event_by_id", fetch, {"id": event_id})
