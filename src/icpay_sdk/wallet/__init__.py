"""
Wallet connection and signer variants
"""

from icpay_sdk.wallet.signers import ExternalWalletSigner, ProviderWalletSigner, WalletSigner
from icpay_sdk.wallet.wallet import DEFAULT_PROVIDERS, IcpayWallet, WalletConnector

__all__ = [
    "DEFAULT_PROVIDERS",
    "ExternalWalletSigner",
    "IcpayWallet",
    "ProviderWalletSigner",
    "WalletConnector",
    "WalletSigner",
]
