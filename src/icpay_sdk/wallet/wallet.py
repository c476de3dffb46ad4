"""
IcpayWallet - wallet provider catalogue and connection state
"""

import logging
from collections.abc import Awaitable, Callable

from icpay_sdk.exceptions import ErrorCode, IcpayError, WalletError, WalletNotConnectedError
from icpay_sdk.types import WalletConnectionResult, WalletProvider
from icpay_sdk.utils.principal import Principal, account_identifier
from icpay_sdk.wallet.signers import ProviderWalletSigner, WalletSigner

logger = logging.getLogger(__name__)

# Returns the principal text of the wallet the user approved
WalletConnector = Callable[[], Awaitable[str]]

DEFAULT_PROVIDERS: list[WalletProvider] = [
    WalletProvider(
        id="internet-identity",
        name="Internet Identity",
        icon="🌐",
        description="Official Internet Computer identity provider",
    ),
    WalletProvider(
        id="oisy",
        name="OISY",
        icon="🔐",
        description="OISY wallet for Internet Computer",
    ),
    WalletProvider(
        id="plug",
        name="Plug Wallet",
        icon="🔌",
        description="Plug wallet extension",
    ),
]


class IcpayWallet:
    """
    Tracks the connected wallet.

    A provider is available when a connector coroutine has been registered for
    it. Connectors perform the provider-specific handshake and return the
    approved principal.
    """

    def __init__(
        self,
        connected_wallet: WalletSigner | None = None,
        connectors: dict[str, WalletConnector] | None = None,
    ) -> None:
        self._providers = list(DEFAULT_PROVIDERS)
        self._connectors: dict[str, WalletConnector] = dict(connectors or {})
        self._signer: WalletSigner | None = connected_wallet

    def get_providers(self) -> list[WalletProvider]:
        return list(self._providers)

    def register_connector(self, provider_id: str, connector: WalletConnector) -> "IcpayWallet":
        """Register the connector for a provider; returns self for chaining"""
        if provider_id not in {p.id for p in self._providers}:
            raise WalletError(
                f"Unsupported wallet provider: {provider_id}",
                code=ErrorCode.UNSUPPORTED_PROVIDER,
            )
        self._connectors[provider_id] = connector
        return self

    def is_provider_available(self, provider_id: str) -> bool:
        return provider_id in self._connectors

    async def connect_to_provider(self, provider_id: str) -> WalletConnectionResult:
        """
        Connect to a wallet provider.

        Raises:
            WalletError: UNSUPPORTED_PROVIDER for unknown providers,
                WALLET_PROVIDER_NOT_AVAILABLE when no connector is registered,
                WALLET_CONNECTION_FAILED when the handshake fails
        """
        if provider_id not in {p.id for p in self._providers}:
            raise WalletError(
                f"Unsupported wallet provider: {provider_id}",
                code=ErrorCode.UNSUPPORTED_PROVIDER,
            )
        connector = self._connectors.get(provider_id)
        if connector is None:
            raise WalletError(
                f"Wallet provider {provider_id} is not available",
                code=ErrorCode.WALLET_PROVIDER_NOT_AVAILABLE,
            )

        try:
            principal_text = await connector()
            principal = Principal.from_text(principal_text)
        except IcpayError:
            raise
        except Exception as e:
            logger.warning(f"Connection to {provider_id} failed: {e}")
            raise WalletError(
                f"Failed to connect to {provider_id}",
                code=ErrorCode.WALLET_CONNECTION_FAILED,
                details=str(e),
            ) from e

        self._signer = ProviderWalletSigner(provider_id, principal.to_text())
        logger.info(f"Connected to {provider_id} as {principal}")
        return WalletConnectionResult(
            provider=provider_id,
            principal=principal.to_text(),
            account_id=principal.to_text(),
            connected=True,
        )

    async def connect_first_available(self) -> WalletConnectionResult:
        for provider in self._providers:
            if self.is_provider_available(provider.id):
                return await self.connect_to_provider(provider.id)
        raise WalletError("No wallet providers available", code=ErrorCode.NO_PROVIDERS_AVAILABLE)

    def get_signer(self) -> WalletSigner | None:
        return self._signer

    def is_connected(self) -> bool:
        return self._signer is not None and self._signer.is_connected()

    def get_connected_provider(self) -> str | None:
        if not self.is_connected():
            return None
        return self._signer.provider_id

    def get_account_address(self) -> str:
        """
        Principal text of the connected wallet.

        Raises:
            WalletNotConnectedError: If no wallet is connected
        """
        principal = self._signer.get_principal() if self.is_connected() else None
        if not principal:
            raise WalletNotConnectedError()
        return principal

    def get_account_identifier(self) -> str:
        """Hex ICP ledger account identifier of the connected wallet"""
        return account_identifier(self.get_account_address())

    def use_signer(self, signer: WalletSigner) -> None:
        """Adopt a wallet connected outside the SDK"""
        self._signer = signer

    def disconnect(self) -> None:
        if self._signer is not None:
            self._signer.disconnect()
        self._signer = None
