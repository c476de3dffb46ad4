"""
Type definitions for the ICPay SDK
"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field

PaymentStatus = Literal["pending", "completed", "failed", "canceled", "refunded", "mismatched"]
PaymentIntentStatus = Literal[
    "requires_payment", "processing", "succeeded", "completed", "failed", "canceled"
]
InvoiceStatus = Literal["draft", "open", "paid", "void"]
LedgerStandard = Literal["ICRC-1", "ICRC-2", "ICRC-3", "ICRC-10", "ICRC-21", "ICP", "EXT"]
LedgerNetwork = Literal["mainnet", "testnet"]
WalletNetwork = Literal["ic", "eth", "btc", "sol"]
WalletType = Literal["user", "platform", "canister"]


class TransactionStatus(str, Enum):
    """Canonical transaction status exposed to SDK callers"""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not TransactionStatus.PENDING


# ---------------------------------------------------------------------------
# Ledgers and accounts
# ---------------------------------------------------------------------------


class VerifiedLedger(BaseModel):
    """Ledger verified by ICPay"""

    id: str
    name: str
    symbol: str
    canister_id: str = Field(alias="canisterId")
    decimals: int
    logo_url: Optional[str] = Field(None, alias="logoUrl")
    verified: bool = True
    fee: Optional[str] = None
    current_price: Optional[float] = Field(None, alias="currentPrice")
    last_price_update: Optional[datetime] = Field(None, alias="lastPriceUpdate")

    class Config:
        populate_by_name = True


class LedgerInfo(VerifiedLedger):
    """Detailed ledger information"""

    standard: Optional[LedgerStandard] = None
    network: Optional[LedgerNetwork] = None
    description: Optional[str] = None
    coingecko_id: Optional[str] = Field(None, alias="coingeckoId")
    price_fetch_method: Optional[str] = Field(None, alias="priceFetchMethod")
    last_block_index: Optional[str] = Field(None, alias="lastBlockIndex")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")


class AccountBranding(BaseModel):
    """Account branding shown on payment pages"""

    logo_url: Optional[str] = Field(None, alias="logoUrl")
    favicon_url: Optional[str] = Field(None, alias="faviconUrl")
    primary_color: Optional[str] = Field(None, alias="primaryColor")
    secondary_color: Optional[str] = Field(None, alias="secondaryColor")
    statement_descriptor: Optional[str] = Field(None, alias="statementDescriptor")

    class Config:
        populate_by_name = True


class PublicAccountInfo(BaseModel):
    """Account information visible with a publishable key"""

    id: str
    name: Optional[str] = None
    is_active: bool = Field(True, alias="isActive")
    is_live: bool = Field(False, alias="isLive")
    account_canister_id: int = Field(alias="accountCanisterId")
    icpay_canister_id: Optional[str] = Field(None, alias="icpayCanisterId")
    branding: Optional[AccountBranding] = None

    class Config:
        populate_by_name = True


class AccountInfo(BaseModel):
    """Account information visible with a secret key"""

    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    is_active: bool = Field(True, alias="isActive")
    is_live: bool = Field(False, alias="isLive")
    account_canister_id: int = Field(alias="accountCanisterId")
    wallet_address: Optional[str] = Field(None, alias="walletAddress")
    icpay_canister_backend: Optional[str] = None
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    class Config:
        populate_by_name = True


# ---------------------------------------------------------------------------
# Payment requests
# ---------------------------------------------------------------------------


class CreateTransactionRequest(BaseModel):
    """Request to send a base-unit amount to the ICPay platform"""

    ledger_canister_id: str = Field(alias="ledgerCanisterId")
    amount: Union[int, str]
    account_canister_id: Optional[Union[int, str]] = Field(None, alias="accountCanisterId")
    metadata: Optional[dict[str, Any]] = None
    amount_usd: Optional[float] = Field(None, alias="amountUsd")

    class Config:
        populate_by_name = True


class SendFundsUsdRequest(BaseModel):
    """Request to send a USD-denominated amount"""

    ledger_canister_id: str = Field(alias="ledgerCanisterId")
    usd_amount: Union[float, str] = Field(alias="usdAmount")
    account_canister_id: Optional[Union[int, str]] = Field(None, alias="accountCanisterId")
    metadata: Optional[dict[str, Any]] = None

    class Config:
        populate_by_name = True


class PriceCalculationRequest(BaseModel):
    """Request to convert a USD amount into ledger base units"""

    usd_amount: Union[float, str] = Field(alias="usdAmount")
    ledger_canister_id: str = Field(alias="ledgerCanisterId")
    ledger_symbol: Optional[str] = Field(None, alias="ledgerSymbol")

    class Config:
        populate_by_name = True


class PriceQuote(BaseModel):
    """USD price of one whole token of a ledger"""

    ledger_canister_id: str = Field(alias="ledgerCanisterId")
    price: Optional[float] = None
    timestamp: Optional[datetime] = None
    decimals: int
    symbol: str = ""
    name: str = ""

    class Config:
        populate_by_name = True


class PriceCalculationResult(BaseModel):
    """Result of a USD to token conversion"""

    usd_amount: float = Field(alias="usdAmount")
    ledger_canister_id: str = Field(alias="ledgerCanisterId")
    ledger_symbol: str = Field(alias="ledgerSymbol")
    ledger_name: str = Field(alias="ledgerName")
    current_price: float = Field(alias="currentPrice")
    price_timestamp: Optional[datetime] = Field(None, alias="priceTimestamp")
    token_amount_human: str = Field(alias="tokenAmountHuman")
    token_amount_decimals: str = Field(alias="tokenAmountDecimals")
    decimals: int

    class Config:
        populate_by_name = True


# ---------------------------------------------------------------------------
# Payments API records
# ---------------------------------------------------------------------------


class SdkPaymentIntent(BaseModel):
    """Payment intent record"""

    id: str
    account_id: Optional[str] = Field(None, alias="accountId")
    amount: str
    ledger_canister_id: str = Field(alias="ledgerCanisterId")
    description: Optional[str] = None
    expected_sender_principal: Optional[str] = Field(None, alias="expectedSenderPrincipal")
    status: Optional[PaymentIntentStatus] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    intent_code: Optional[int] = Field(None, alias="intentCode")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    class Config:
        populate_by_name = True
        extra = "allow"


class SdkPayment(BaseModel):
    """Payment record"""

    id: str
    account_id: Optional[str] = Field(None, alias="accountId")
    payment_intent_id: Optional[str] = Field(None, alias="paymentIntentId")
    transaction_id: Optional[str] = Field(None, alias="transactionId")
    canister_tx_id: Optional[int] = Field(None, alias="canisterTxId")
    amount: str
    ledger_canister_id: str = Field(alias="ledgerCanisterId")
    status: PaymentStatus
    requested_amount: Optional[str] = Field(None, alias="requestedAmount")
    paid_amount: Optional[str] = Field(None, alias="paidAmount")
    invoice_id: Optional[str] = Field(None, alias="invoiceId")
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    class Config:
        populate_by_name = True
        extra = "allow"


class SdkInvoice(BaseModel):
    """Invoice record"""

    id: str
    account_id: Optional[str] = Field(None, alias="accountId")
    payment_id: Optional[str] = Field(None, alias="paymentId")
    invoice_number: Optional[str] = Field(None, alias="invoiceNumber")
    amount_due: str = Field(alias="amountDue")
    amount_paid: Optional[str] = Field(None, alias="amountPaid")
    currency: Optional[str] = None
    status: InvoiceStatus
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    class Config:
        populate_by_name = True
        extra = "allow"


class SdkTransaction(BaseModel):
    """Transaction record as stored by the ICPay API"""

    id: str
    account_id: Optional[str] = Field(None, alias="accountId")
    canister_tx_id: Optional[int] = Field(None, alias="canisterTxId")
    sender_principal_id: Optional[str] = Field(None, alias="senderPrincipalId")
    transaction_type: Optional[str] = Field(None, alias="transactionType")
    status: str
    amount: str
    ledger_canister_id: str = Field(alias="ledgerCanisterId")
    index_received: Optional[int] = Field(None, alias="indexReceived")
    memo: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    processed_at: Optional[datetime] = Field(None, alias="processedAt")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    class Config:
        populate_by_name = True
        extra = "allow"


class SdkWallet(BaseModel):
    """Wallet record"""

    id: str
    account_id: Optional[str] = Field(None, alias="accountId")
    wallet_name: str = Field(alias="walletName")
    wallet_address: str = Field(alias="walletAddress")
    network: WalletNetwork
    type: WalletType
    icp_account_identifier: Optional[str] = Field(None, alias="icpAccountIdentifier")
    is_active: bool = Field(True, alias="isActive")
    is_primary: bool = Field(False, alias="isPrimary")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    class Config:
        populate_by_name = True
        extra = "allow"


class SdkWebhookEvent(BaseModel):
    """Webhook delivery record"""

    id: str
    webhook_endpoint_id: str = Field(alias="webhookEndpointId")
    event_type: str = Field(alias="eventType")
    event_data: Any = Field(None, alias="eventData")
    endpoint_url: str = Field(alias="endpointUrl")
    status: str
    attempts: int = 0
    max_attempts: int = Field(0, alias="maxAttempts")
    response_status: Optional[int] = Field(None, alias="responseStatus")
    error_message: Optional[str] = Field(None, alias="errorMessage")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    class Config:
        populate_by_name = True
        extra = "allow"


class SdkPaymentAggregate(BaseModel):
    """Payment together with its intent, invoice and transaction"""

    payment: SdkPayment
    intent: Optional[SdkPaymentIntent] = None
    invoice: Optional[SdkInvoice] = None
    transaction: Optional[SdkTransaction] = None


class PublicCreateIntentResponse(BaseModel):
    """Response of the public payment intent endpoint"""

    payment_intent_id: Optional[str] = Field(None, alias="paymentIntentId")
    payment_intent_code: Optional[int] = Field(None, alias="paymentIntentCode")
    payment_intent: Optional[SdkPaymentIntent] = Field(None, alias="paymentIntent")
    payment: Optional[SdkPayment] = None

    class Config:
        populate_by_name = True

    @property
    def intent_id(self) -> Optional[str]:
        if self.payment_intent is not None:
            return self.payment_intent.id
        return self.payment_intent_id


class PublicNotifyResponse(BaseModel):
    """Response of the public payment notification endpoint"""

    payment_id: Optional[str] = Field(None, alias="paymentId")
    payment_intent_id: Optional[str] = Field(None, alias="paymentIntentId")
    status: Optional[str] = None
    canister_tx_id: Optional[int] = Field(None, alias="canisterTxId")
    transaction_id: Optional[str] = Field(None, alias="transactionId")

    class Config:
        populate_by_name = True
        extra = "allow"


# ---------------------------------------------------------------------------
# Pipeline results
# ---------------------------------------------------------------------------


class TransactionResponse(BaseModel):
    """Final result of a send_funds call"""

    transaction_id: Union[int, str] = Field(alias="transactionId")
    status: TransactionStatus
    amount: str
    recipient_canister: str = Field(alias="recipientCanister")
    timestamp: datetime
    block_index: Optional[int] = Field(None, alias="blockIndex")
    description: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    payment: Optional[PublicNotifyResponse] = None

    class Config:
        populate_by_name = True
        frozen = True


class BackendTransaction(BaseModel):
    """Transaction as recorded by the on-chain tracking service

    ``status`` is kept raw (tagged variant, string, or missing); use
    ``icpay_sdk.payments.status.normalize_status`` to interpret it.
    """

    id: Union[int, str]
    status: Any = None
    amount: Optional[int] = None
    ledger_canister_id: Optional[str] = None
    account_canister_id: Optional[int] = None
    sender_principal_id: Optional[str] = None
    index_received: Optional[int] = None
    timestamp_received: Optional[int] = None

    class Config:
        extra = "allow"


class TransactionFilter(BaseModel):
    """Filter for the tracking service transaction listing"""

    account_canister_id: Optional[int] = None
    ledger_canister_id: Optional[str] = None
    from_timestamp: Optional[int] = None
    to_timestamp: Optional[int] = None
    from_id: Optional[int] = None
    status: Optional[str] = None
    limit: Optional[int] = None
    offset: Optional[int] = None


class NotifyOutcome(BaseModel):
    """What the tracking service reported after a transfer notification"""

    transaction_id: Union[int, str]
    status: Optional[TransactionStatus] = None
    amount: Optional[int] = None
    raw: Any = None


class LedgerTransferError(BaseModel):
    """Rejection returned by an ICRC-1 ledger ``transfer`` call"""

    kind: Literal[
        "BadFee",
        "BadBurn",
        "InsufficientFunds",
        "TooOld",
        "CreatedInFuture",
        "TemporarilyUnavailable",
        "Duplicate",
        "GenericError",
        "Unknown",
    ]
    expected_fee: Optional[int] = None
    min_burn_amount: Optional[int] = None
    balance: Optional[int] = None
    ledger_time: Optional[int] = None
    duplicate_of: Optional[int] = None
    error_code: Optional[int] = None
    message: Optional[str] = None

    def describe(self) -> str:
        extras = {
            k: v for k, v in self.model_dump(exclude={"kind"}).items() if v is not None
        }
        if not extras:
            return self.kind
        fields = ", ".join(f"{k}={v}" for k, v in extras.items())
        return f"{self.kind}({fields})"


# ---------------------------------------------------------------------------
# History and balances
# ---------------------------------------------------------------------------


class PaymentHistoryRequest(BaseModel):
    """Filter for payment and transaction history"""

    account_id: Optional[str] = Field(None, alias="accountId")
    ledger_canister_id: Optional[str] = Field(None, alias="ledgerCanisterId")
    from_timestamp: Optional[datetime] = Field(None, alias="fromTimestamp")
    to_timestamp: Optional[datetime] = Field(None, alias="toTimestamp")
    status: Optional[TransactionStatus] = None
    limit: Optional[int] = None
    offset: Optional[int] = None

    class Config:
        populate_by_name = True


class PaymentHistoryItem(BaseModel):
    """Single entry of a payment history page"""

    id: str
    transaction_id: Union[int, str] = Field(alias="transactionId")
    status: TransactionStatus
    amount: str
    currency: Optional[str] = None
    ledger_canister_id: str = Field(alias="ledgerCanisterId")
    ledger_symbol: Optional[str] = Field(None, alias="ledgerSymbol")
    from_address: Optional[str] = Field(None, alias="fromAddress")
    to_address: Optional[str] = Field(None, alias="toAddress")
    block_height: Optional[int] = Field(None, alias="blockHeight")
    fee: Optional[str] = None
    decimals: Optional[int] = None
    metadata: Any = None
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    class Config:
        populate_by_name = True


class PaymentHistoryResponse(BaseModel):
    """Page of payment history"""

    payments: list[PaymentHistoryItem] = Field(default_factory=list)
    total: int = 0
    limit: int = 0
    offset: int = 0
    has_more: bool = Field(False, alias="hasMore")

    class Config:
        populate_by_name = True


class GetPaymentsByPrincipalRequest(BaseModel):
    """Filter for payments made by one principal"""

    principal_id: str = Field(alias="principalId")
    limit: Optional[int] = None
    offset: Optional[int] = None
    status: Optional[TransactionStatus] = None

    class Config:
        populate_by_name = True


class LedgerBalance(BaseModel):
    """Balance of the connected wallet on one ledger"""

    ledger_id: str = Field(alias="ledgerId")
    ledger_name: str = Field(alias="ledgerName")
    ledger_symbol: str = Field(alias="ledgerSymbol")
    canister_id: str = Field(alias="canisterId")
    balance: str
    formatted_balance: str = Field(alias="formattedBalance")
    decimals: int
    current_price: Optional[float] = Field(None, alias="currentPrice")
    last_price_update: Optional[datetime] = Field(None, alias="lastPriceUpdate")
    last_updated: datetime = Field(alias="lastUpdated")

    class Config:
        populate_by_name = True


class AllLedgerBalances(BaseModel):
    """Balances of the connected wallet across verified ledgers"""

    balances: list[LedgerBalance] = Field(default_factory=list)
    total_balances_usd: Optional[float] = Field(None, alias="totalBalancesUSD")
    last_updated: datetime = Field(alias="lastUpdated")

    class Config:
        populate_by_name = True


class BalanceSnapshot(BaseModel):
    """Point-in-time balances of one principal"""

    principal: str
    balances: dict[str, int] = Field(default_factory=dict)
    fetched_at: datetime


# ---------------------------------------------------------------------------
# Wallets
# ---------------------------------------------------------------------------


class WalletProvider(BaseModel):
    """Wallet provider offered to end users"""

    id: str
    name: str
    icon: str = ""
    description: str = ""


class WalletConnectionResult(BaseModel):
    """Outcome of connecting to a wallet provider"""

    provider: str
    principal: str
    account_id: str = Field(alias="accountId")
    connected: bool

    class Config:
        populate_by_name = True


# ---------------------------------------------------------------------------
# Protected API responses
# ---------------------------------------------------------------------------


class TransactionStatusResponse(BaseModel):
    """Status of a transaction as tracked by the ICPay API"""

    transaction_id: Union[int, str] = Field(alias="transactionId")
    status: TransactionStatus
    block_height: Optional[int] = Field(None, alias="blockHeight")
    timestamp: Optional[datetime] = None
    error: Optional[str] = None

    class Config:
        populate_by_name = True


class TransactionHistoryResponse(BaseModel):
    """Page of transaction history"""

    transactions: list[PaymentHistoryItem] = Field(default_factory=list)
    total: int = 0
    limit: int = 0
    offset: int = 0
    has_more: bool = Field(False, alias="hasMore")

    class Config:
        populate_by_name = True
