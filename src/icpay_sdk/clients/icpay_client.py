"""
IcpayClient - entry point of the ICPay SDK
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, TypeVar

import httpx
import pydantic

from icpay_sdk.cache import SessionCache
from icpay_sdk.clients.api_client import IcpayApiClient
from icpay_sdk.clients.payment_gateway import ApiPaymentGateway, trigger_transaction_sync
from icpay_sdk.clients.protected import ProtectedApi
from icpay_sdk.config import IcpayConfig
from icpay_sdk.events import IcpayEventCenter, IcpayEventName
from icpay_sdk.exceptions import (
    ConfigurationError,
    ErrorCode,
    IcpayError,
    InvalidUsdAmountError,
    LedgerNotFoundError,
    PriceNotAvailableError,
    ValidationError,
)
from icpay_sdk.logging_config import enable_debug_logging
from icpay_sdk.payments.amounts import AmountNormalizer, format_balance
from icpay_sdk.payments.balance import BalanceResolver
from icpay_sdk.payments.interfaces import LedgerActor, LedgerFactory, TrackingFactory
from icpay_sdk.payments.notify import NotificationBridge
from icpay_sdk.payments.orchestrator import PLATFORM_CANISTER_ID_KEY, TransactionOrchestrator
from icpay_sdk.payments.poller import PollResult, RetryPolicy, StatusPoller
from icpay_sdk.payments.transfer import TransferSubmitter
from icpay_sdk.types import (
    AllLedgerBalances,
    BackendTransaction,
    CreateTransactionRequest,
    LedgerBalance,
    LedgerInfo,
    NotifyOutcome,
    PriceCalculationRequest,
    PriceCalculationResult,
    PriceQuote,
    PublicAccountInfo,
    SendFundsUsdRequest,
    TransactionResponse,
    VerifiedLedger,
    WalletConnectionResult,
    WalletProvider,
)
from icpay_sdk.wallet.signers import WalletSigner
from icpay_sdk.wallet.wallet import IcpayWallet

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=pydantic.BaseModel)

PUBLIC_ACCOUNT_KEY = "public_account_info"


def _parse_request(model: type[M], request: M | dict[str, Any]) -> M:
    if isinstance(request, model):
        return request
    try:
        return model.model_validate(request)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid {model.__name__}: {e}", details=e.errors()) from e


def _missing_factory(kind: str) -> Callable[[str], Any]:
    def factory(canister_id: str) -> Any:
        raise ConfigurationError(
            f"No {kind} factory configured; cannot reach canister {canister_id}"
        )

    return factory


class IcpayClient:
    """
    ICPay SDK client.

    Combines the public payment API, the protected (secret-key) API and the
    on-chain payment pipeline. Ledger and tracking canisters are reached
    through the injected factories, so any Internet Computer agent can be used.

    Example:
        async with IcpayClient(config, ledger_factory=..., tracking_factory=...) as icpay:
            await icpay.connect_wallet("plug")
            result = await icpay.send_funds({"ledgerCanisterId": ..., "amount": "100000"})
    """

    def __init__(
        self,
        config: IcpayConfig,
        ledger_factory: LedgerFactory | None = None,
        tracking_factory: TrackingFactory | None = None,
        wallet: IcpayWallet | None = None,
        connected_wallet: WalletSigner | None = None,
        events: IcpayEventCenter | None = None,
        cache: SessionCache | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        if config.debug:
            enable_debug_logging()

        self.events = events or IcpayEventCenter(enabled=config.enable_events)
        self.cache = cache or SessionCache()
        self.wallet = wallet or IcpayWallet(connected_wallet=connected_wallet)

        self._public_api = IcpayApiClient(
            config.api_url,
            headers={"Authorization": f"Bearer {config.public_key}"},
            timeout=config.request_timeout_seconds,
            http_client=http_client,
        )
        self._private_api: IcpayApiClient | None = None
        if config.secret_key:
            headers = {"Authorization": f"Bearer {config.secret_key}"}
            if config.account_id:
                headers["X-Account-Id"] = config.account_id
            self._private_api = IcpayApiClient(
                config.api_url,
                headers=headers,
                timeout=config.request_timeout_seconds,
                http_client=http_client,
            )
        self.protected = ProtectedApi(self._private_api, self.events)

        self._has_ledger_factory = ledger_factory is not None
        self._ledger_factory = ledger_factory
        self._has_tracking_factory = tracking_factory is not None
        ledger_factory = ledger_factory or _missing_factory("ledger")
        tracking_factory = tracking_factory or _missing_factory("tracking")

        self.resolver = BalanceResolver(self.wallet.get_signer(), ledger_factory)
        self.normalizer = AmountNormalizer(self._get_price_quote)
        self.poller = StatusPoller(
            tracking_factory,
            RetryPolicy(
                max_attempts=config.poll_max_attempts,
                interval=config.poll_interval_seconds,
                deadline=config.poll_timeout_seconds,
            ),
            sleep=sleep,
            clock=clock,
        )
        self.bridge = NotificationBridge(tracking_factory)
        self.orchestrator = TransactionOrchestrator(
            resolver=self.resolver,
            normalizer=self.normalizer,
            submitter=TransferSubmitter(ledger_factory),
            bridge=self.bridge,
            poller=self.poller,
            account_resolver=self._resolve_account_canister_id,
            platform_resolver=self._resolve_platform_canister_id,
            cache=self.cache,
            observer=self.events,
            events=self.events,
            gateway=ApiPaymentGateway(self._public_api, sleep=sleep),
            await_payment_notification=config.await_server_notification,
        )

    async def __aenter__(self) -> "IcpayClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Wait for background notifications and close HTTP clients"""
        await self.orchestrator.drain()
        await self._public_api.close()
        if self._private_api is not None:
            await self._private_api.close()

    async def _observe(
        self,
        method: str,
        call: Callable[[], Awaitable[T]],
        params: dict[str, Any] | None = None,
        error_code: ErrorCode | None = None,
        error_message: str | None = None,
        passthrough: tuple[type[IcpayError], ...] = (),
    ) -> T:
        """Run ``call`` between method start/success/error events.

        Errors of the ``passthrough`` types are re-raised untouched; everything
        else is re-raised as an IcpayError carrying ``error_code``.
        """
        self.events.method_start(method, params)
        try:
            result = await call()
        except Exception as e:
            error: IcpayError
            if isinstance(e, passthrough) or error_code is None and isinstance(e, IcpayError):
                error = e
            else:
                error = IcpayError(
                    error_message or f"{method} failed",
                    code=error_code or ErrorCode.UNKNOWN_ERROR,
                    details=e.to_dict() if isinstance(e, IcpayError) else str(e),
                    retryable=getattr(e, "retryable", False),
                )
            self.events.method_error(method, error)
            if error is e:
                raise
            raise error from e
        self.events.method_success(method, result)
        return result

    def _require_factories(self, *, ledger: bool = False, tracking: bool = False) -> None:
        if ledger and not self._has_ledger_factory:
            raise ConfigurationError("A ledger_factory is required for ledger operations")
        if tracking and not self._has_tracking_factory:
            raise ConfigurationError("A tracking_factory is required for tracking operations")

    # ------------------------------------------------------------------
    # Account and ledgers (public API)
    # ------------------------------------------------------------------

    async def get_account_info(self) -> PublicAccountInfo:
        """Public account information; cached for the lifetime of the client"""

        async def fetch() -> PublicAccountInfo:
            data = await self._public_api.get("/sdk/public/account")
            return PublicAccountInfo.model_validate(data)

        return await self._observe(
            "get_account_info",
            lambda: self.cache.get_or_fetch(PUBLIC_ACCOUNT_KEY, fetch),
            error_code=ErrorCode.ACCOUNT_INFO_FETCH_FAILED,
            error_message="Failed to fetch account information",
        )

    async def get_verified_ledgers(self) -> list[VerifiedLedger]:
        async def fetch() -> list[VerifiedLedger]:
            data = await self._public_api.get("/sdk/public/ledgers/verified")
            return [VerifiedLedger.model_validate(item) for item in data or []]

        return await self._observe(
            "get_verified_ledgers",
            fetch,
            error_code=ErrorCode.VERIFIED_LEDGERS_FETCH_FAILED,
            error_message="Failed to fetch verified ledgers",
        )

    async def get_ledger_info(self, ledger_canister_id: str) -> LedgerInfo:
        async def fetch() -> LedgerInfo:
            data = await self._public_api.get(f"/sdk/public/ledgers/{ledger_canister_id}")
            return LedgerInfo.model_validate(data)

        return await self._observe(
            "get_ledger_info",
            fetch,
            {"ledgerCanisterId": ledger_canister_id},
            ErrorCode.LEDGER_INFO_FETCH_FAILED,
            f"Failed to fetch ledger info for {ledger_canister_id}",
        )

    async def get_all_ledgers_with_prices(self) -> list[LedgerInfo]:
        async def fetch() -> list[LedgerInfo]:
            data = await self._public_api.get("/sdk/public/ledgers/all-with-prices")
            return [LedgerInfo.model_validate(item) for item in data or []]

        return await self._observe(
            "get_all_ledgers_with_prices",
            fetch,
            error_code=ErrorCode.LEDGER_INFO_FETCH_FAILED,
            error_message="Failed to fetch ledgers with prices",
        )

    async def trigger_transaction_sync(self, canister_transaction_id: int | str) -> Any:
        return await self._observe(
            "trigger_transaction_sync",
            lambda: trigger_transaction_sync(self._public_api, canister_transaction_id),
            {"canisterTransactionId": canister_transaction_id},
        )

    async def _find_verified_ledger(
        self, ledger_canister_id: str, symbol: str | None = None
    ) -> VerifiedLedger:
        ledgers = await self.get_verified_ledgers()
        for ledger in ledgers:
            if ledger.canister_id == ledger_canister_id:
                return ledger
        if symbol:
            for ledger in ledgers:
                if ledger.symbol == symbol:
                    return ledger
        raise LedgerNotFoundError(ledger_canister_id)

    async def _get_price_quote(
        self, ledger_canister_id: str, symbol: str | None = None
    ) -> PriceQuote:
        ledger = await self._find_verified_ledger(ledger_canister_id, symbol)
        return PriceQuote(
            ledger_canister_id=ledger.canister_id,
            price=ledger.current_price,
            timestamp=ledger.last_price_update,
            decimals=ledger.decimals,
            symbol=ledger.symbol,
            name=ledger.name,
        )

    async def calculate_token_amount_from_usd(
        self, request: PriceCalculationRequest | dict[str, Any]
    ) -> PriceCalculationResult:
        """
        Convert a USD amount into base units of a verified ledger.

        Raises:
            InvalidUsdAmountError: If the USD amount is not strictly positive
            LedgerNotFoundError: If the ledger is not verified
            PriceNotAvailableError: If the ledger has no usable price
        """
        request = _parse_request(PriceCalculationRequest, request)

        async def calculate() -> PriceCalculationResult:
            normalizer = AmountNormalizer(
                lambda ledger_id: self._get_price_quote(ledger_id, request.ledger_symbol)
            )
            return await normalizer.from_usd(request.usd_amount, request.ledger_canister_id)

        return await self._observe(
            "calculate_token_amount_from_usd",
            calculate,
            request.model_dump(by_alias=True, exclude_none=True),
            ErrorCode.PRICE_CALCULATION_FAILED,
            "Failed to calculate token amount from USD",
            passthrough=(InvalidUsdAmountError, LedgerNotFoundError, PriceNotAvailableError),
        )

    # ------------------------------------------------------------------
    # Wallet
    # ------------------------------------------------------------------

    def get_wallet_providers(self) -> list[WalletProvider]:
        return self.wallet.get_providers()

    async def connect_wallet(self, provider_id: str) -> WalletConnectionResult:
        result = await self._observe(
            "connect_wallet",
            lambda: self.wallet.connect_to_provider(provider_id),
            {"providerId": provider_id},
        )
        self.resolver.signer = self.wallet.get_signer()
        self.events.emit(IcpayEventName.CONNECT_WALLET, result.model_dump(by_alias=True))
        return result

    def use_signer(self, signer: WalletSigner) -> None:
        """Use an already connected wallet, replacing any provider connection"""
        self.wallet.use_signer(signer)
        self.resolver.signer = signer

    async def disconnect_wallet(self) -> None:
        self.wallet.disconnect()
        self.resolver.signer = None

    def is_wallet_connected(self) -> bool:
        return self.wallet.is_connected()

    def get_connected_wallet_provider(self) -> str | None:
        return self.wallet.get_connected_provider()

    def get_account_identifier(self) -> str:
        """Hex ICP account identifier of the connected wallet"""
        return self.wallet.get_account_identifier()

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    async def get_ledger_balance(self, ledger_canister_id: str) -> int:
        """Balance of the connected wallet on one ledger, in base units"""
        self._require_factories(ledger=True)
        return await self._observe(
            "get_ledger_balance",
            lambda: self.resolver.get_balance(ledger_canister_id),
            {"ledgerCanisterId": ledger_canister_id},
        )

    def _to_ledger_balance(self, ledger: VerifiedLedger, balance: int) -> LedgerBalance:
        return LedgerBalance(
            ledger_id=ledger.id,
            ledger_name=ledger.name,
            ledger_symbol=ledger.symbol,
            canister_id=ledger.canister_id,
            balance=str(balance),
            formatted_balance=format_balance(balance, ledger.decimals),
            decimals=ledger.decimals,
            current_price=ledger.current_price,
            last_price_update=ledger.last_price_update,
            last_updated=datetime.now(timezone.utc),
        )

    async def get_single_ledger_balance(self, ledger_canister_id: str) -> LedgerBalance:
        self._require_factories(ledger=True)

        async def fetch() -> LedgerBalance:
            ledger = await self._find_verified_ledger(ledger_canister_id)
            balance = await self.resolver.get_balance(ledger_canister_id)
            return self._to_ledger_balance(ledger, balance)

        return await self._observe(
            "get_single_ledger_balance", fetch, {"ledgerCanisterId": ledger_canister_id}
        )

    async def get_all_ledger_balances(self) -> AllLedgerBalances:
        """
        Balances of the connected wallet on every verified ledger.

        Ledgers whose balance query fails are logged and left out.
        """
        self._require_factories(ledger=True)

        async def fetch() -> AllLedgerBalances:
            principal = self.resolver.resolve_principal()
            balances: list[LedgerBalance] = []
            total_usd = Decimal(0)
            has_prices = False
            for ledger in await self.get_verified_ledgers():
                try:
                    balance = await self.resolver.get_balance(ledger.canister_id, principal)
                except IcpayError as e:
                    logger.warning(f"Skipping ledger {ledger.symbol}: {e.message}")
                    continue
                balances.append(self._to_ledger_balance(ledger, balance))
                if ledger.current_price and balance > 0:
                    has_prices = True
                    total_usd += (
                        Decimal(balance).scaleb(-ledger.decimals)
                        * Decimal(repr(ledger.current_price))
                    )
            return AllLedgerBalances(
                balances=balances,
                total_balances_usd=float(total_usd) if has_prices else None,
                last_updated=datetime.now(timezone.utc),
            )

        return await self._observe(
            "get_all_ledger_balances",
            fetch,
            error_code=ErrorCode.LEDGER_BALANCES_FETCH_FAILED,
            error_message="Failed to fetch ledger balances",
            passthrough=(IcpayError,),
        )

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    async def _resolve_account_canister_id(self) -> int:
        return (await self.get_account_info()).account_canister_id

    async def _resolve_platform_canister_id(self) -> str:
        if self.config.icpay_canister_id:
            return self.config.icpay_canister_id
        account = await self.get_account_info()
        if account.icpay_canister_id:
            return account.icpay_canister_id
        if self._private_api is not None:
            detailed = await self.protected.get_detailed_account_info()
            if detailed.icpay_canister_backend:
                return detailed.icpay_canister_backend
        raise ConfigurationError(
            "ICPay canister id is unknown; set icpay_canister_id in the configuration",
            code=ErrorCode.ACCOUNT_NOT_FOUND,
        )

    async def send_funds(
        self, request: CreateTransactionRequest | dict[str, Any]
    ) -> TransactionResponse:
        """
        Send a base-unit amount from the connected wallet to the ICPay platform.

        Returns:
            TransactionResponse; ``pending`` when confirmation could not be
            observed in time

        Raises:
            WalletNotConnectedError, InsufficientBalanceError,
            BalanceCheckFailedError, TransactionFailedError, ...
        """
        request = _parse_request(CreateTransactionRequest, request)
        self._require_factories(ledger=True, tracking=True)
        return await self.orchestrator.send_funds(request)

    async def send_funds_usd(
        self, request: SendFundsUsdRequest | dict[str, Any]
    ) -> TransactionResponse:
        """
        Send a USD-denominated amount, converted at the ledger's current price.

        Raises:
            InvalidUsdAmountError, PriceNotAvailableError, and everything send_funds raises
        """
        request = _parse_request(SendFundsUsdRequest, request)
        self._require_factories(ledger=True, tracking=True)

        async def send() -> TransactionResponse:
            price = await self.calculate_token_amount_from_usd(
                PriceCalculationRequest(
                    usd_amount=request.usd_amount,
                    ledger_canister_id=request.ledger_canister_id,
                )
            )
            return await self.send_funds(
                CreateTransactionRequest(
                    ledger_canister_id=request.ledger_canister_id,
                    amount=price.token_amount_decimals,
                    account_canister_id=request.account_canister_id,
                    metadata=request.metadata,
                    amount_usd=price.usd_amount,
                )
            )

        return await self._observe(
            "send_funds_usd",
            send,
            request.model_dump(by_alias=True, exclude_none=True),
            ErrorCode.SEND_FUNDS_USD_FAILED,
            "Failed to send USD funds",
            passthrough=(IcpayError,),
        )

    async def notify_ledger_transaction(
        self, ledger_canister_id: str, block_index: int, canister_id: str | None = None
    ) -> NotifyOutcome:
        """Tell the tracking service about a transfer made outside send_funds"""
        self._require_factories(tracking=True)
        canister_id = canister_id or await self.cache.get_or_fetch(
            PLATFORM_CANISTER_ID_KEY, self._resolve_platform_canister_id
        )
        return await self.bridge.notify(canister_id, ledger_canister_id, block_index)

    async def poll_transaction_status(
        self,
        transaction_id: int | str,
        account_canister_id: int | None = None,
        canister_id: str | None = None,
        policy: RetryPolicy | None = None,
    ) -> PollResult:
        """
        Poll the tracking service until the transaction is completed or failed.

        Raises:
            TransactionTimeoutError: If the transaction was never observed
        """
        self._require_factories(tracking=True)
        canister_id = canister_id or await self.cache.get_or_fetch(
            PLATFORM_CANISTER_ID_KEY, self._resolve_platform_canister_id
        )
        return await self.poller.poll(canister_id, transaction_id, account_canister_id, policy)

    async def get_transaction_by_filter(
        self, transaction_id: int | str, canister_id: str | None = None
    ) -> BackendTransaction | None:
        """Single tracking-service lookup of a transaction"""
        self._require_factories(tracking=True)
        canister_id = canister_id or await self.cache.get_or_fetch(
            PLATFORM_CANISTER_ID_KEY, self._resolve_platform_canister_id
        )
        return await self.poller.lookup(canister_id, transaction_id)

    def ledger(self, ledger_canister_id: str) -> LedgerActor:
        """Ledger actor for direct calls"""
        self._require_factories(ledger=True)
        return self._ledger_factory(ledger_canister_id)
