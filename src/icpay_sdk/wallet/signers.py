"""
Wallet signers - the identity that pays in send_funds
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from icpay_sdk.utils.principal import Principal


def _principal_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, Principal):
        return value.to_text()
    to_text = getattr(value, "to_text", None)
    if callable(to_text):
        return str(to_text())
    return str(value)


class WalletSigner(ABC):
    """Abstract base class for connected wallet identities"""

    provider_id: str = "external"

    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the wallet is still connected"""

    @abstractmethod
    def get_principal(self) -> str | None:
        """Principal text of the wallet, or None if unknown"""

    def disconnect(self) -> None:
        """Forget the connection; default is a no-op"""


class ExternalWalletSigner(WalletSigner):
    """
    Wallet connected by the host application.

    Either pass the principal directly or a ``get_principal`` callable that is
    consulted on every call.
    """

    def __init__(
        self,
        principal: Any = None,
        get_principal: Callable[[], Any] | None = None,
        connected: bool = True,
    ) -> None:
        if principal is None and get_principal is None:
            raise ValueError("Either principal or get_principal is required")
        self._principal = principal
        self._get_principal = get_principal
        self._connected = connected

    def is_connected(self) -> bool:
        return self._connected

    def get_principal(self) -> str | None:
        if self._get_principal is not None:
            return _principal_text(self._get_principal())
        return _principal_text(self._principal)

    def disconnect(self) -> None:
        self._connected = False


class ProviderWalletSigner(WalletSigner):
    """Wallet connected through one of the registered wallet providers"""

    def __init__(self, provider_id: str, principal: str) -> None:
        self.provider_id = provider_id
        self._principal: str | None = principal

    def is_connected(self) -> bool:
        return self._principal is not None

    def get_principal(self) -> str | None:
        return self._principal

    def disconnect(self) -> None:
        self._principal = None
