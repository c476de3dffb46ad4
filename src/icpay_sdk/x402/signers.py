"""
EVM signers for x402 payment authorizations
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from icpay_sdk.exceptions import ErrorCode, SignatureCreationError, WalletError

logger = logging.getLogger(__name__)


def _to_signable(typed_data: dict[str, Any]) -> dict[str, Any]:
    """Convert JSON-style values (decimal strings, hex bytes) to native types for hashing"""
    types = typed_data["types"]

    def convert(type_name: str, value: Any) -> Any:
        if type_name.startswith(("uint", "int")) and isinstance(value, str):
            return int(value, 0) if value.startswith("0x") else int(value)
        if type_name.startswith("bytes") and type_name != "bytes" and isinstance(value, str):
            return bytes.fromhex(value[2:] if value.startswith("0x") else value)
        return value

    def convert_struct(struct_type: str, data: dict[str, Any]) -> dict[str, Any]:
        fields = {f["name"]: f["type"] for f in types.get(struct_type, [])}
        return {k: convert(fields.get(k, ""), v) for k, v in data.items()}

    return {
        **typed_data,
        "domain": convert_struct("EIP712Domain", typed_data["domain"]),
        "message": convert_struct(typed_data["primaryType"], typed_data["message"]),
    }


class EvmTypedDataSigner(ABC):
    """Account that signs EIP-712 typed data"""

    @abstractmethod
    async def get_address(self, chain_id: int | None = None) -> str:
        """
        Address of the signing account.

        Args:
            chain_id: Chain the signature is meant for; wallets may switch to it
        """

    @abstractmethod
    async def sign_typed_data(self, address: str, typed_data: dict[str, Any]) -> str:
        """Sign an eth_signTypedData_v4 payload; returns the 0x-prefixed signature"""


class LocalEvmSigner(EvmTypedDataSigner):
    """Signs with a private key held in process, using eth_account"""

    def __init__(self, private_key: str) -> None:
        if not private_key.startswith("0x"):
            private_key = "0x" + private_key
        self._private_key = private_key
        self._address = self._derive_address(private_key)
        logger.debug(f"LocalEvmSigner initialized for {self._address}")

    @staticmethod
    def _derive_address(private_key: str) -> str:
        from eth_account import Account

        return Account.from_key(private_key).address

    async def get_address(self, chain_id: int | None = None) -> str:
        return self._address

    async def sign_typed_data(self, address: str, typed_data: dict[str, Any]) -> str:
        if address.lower() != self._address.lower():
            raise SignatureCreationError(f"Signer does not control address {address}")
        try:
            from eth_account import Account
            from eth_account.messages import encode_typed_data

            encoded = encode_typed_data(full_message=_to_signable(typed_data))
            signed = Account.sign_message(encoded, private_key=self._private_key)
        except Exception as e:
            raise SignatureCreationError(f"Failed to sign typed data: {e}") from e
        signature = signed.signature.hex()
        return signature if signature.startswith("0x") else "0x" + signature


class Web3ProviderSigner(EvmTypedDataSigner):
    """
    Signs through a wallet behind a web3 provider.

    Uses the wallet's JSON-RPC methods: ``eth_requestAccounts`` for the account
    and ``eth_signTypedData_v4`` for the signature. Before signing the wallet is
    asked to switch to the target chain; a refused switch is logged and ignored.
    """

    def __init__(self, provider: Any = None, provider_uri: str | None = None) -> None:
        if provider is None and provider_uri is None:
            raise WalletError(
                "Either a web3 provider or a provider URI is required",
                code=ErrorCode.WALLET_PROVIDER_NOT_AVAILABLE,
            )
        self._provider = provider
        self._provider_uri = provider_uri
        self._w3: Any = None

    def _ensure_web3(self) -> Any:
        """Lazy initialize the async web3 client."""
        if self._w3 is None:
            from web3 import AsyncHTTPProvider, AsyncWeb3

            provider = self._provider or AsyncHTTPProvider(self._provider_uri)
            self._w3 = AsyncWeb3(provider)
        return self._w3

    async def _request(self, method: str, params: list[Any] | None = None) -> Any:
        w3 = self._ensure_web3()
        response = await w3.provider.make_request(method, params or [])
        if response.get("error"):
            error = response["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise WalletError(f"{method} failed: {message}", details=error)
        return response.get("result")

    async def _switch_chain(self, chain_id: int) -> None:
        target = hex(chain_id)
        try:
            current = await self._request("eth_chainId")
            if isinstance(current, str) and current.lower() == target:
                return
            await self._request("wallet_switchEthereumChain", [{"chainId": target}])
        except Exception as e:
            logger.info(f"Could not switch wallet to chain {chain_id}, continuing: {e}")

    async def get_address(self, chain_id: int | None = None) -> str:
        if chain_id:
            await self._switch_chain(chain_id)
        accounts = await self._request("eth_requestAccounts")
        if not accounts:
            raise WalletError(
                "No wallet account available for x402", code=ErrorCode.WALLET_NOT_CONNECTED
            )
        return accounts[0]

    async def sign_typed_data(self, address: str, typed_data: dict[str, Any]) -> str:
        try:
            signature = await self._request(
                "eth_signTypedData_v4", [address, json.dumps(typed_data)]
            )
        except WalletError as e:
            raise SignatureCreationError(
                f"Failed to sign typed data: {e.message}", details=e.details
            ) from e
        if not signature:
            raise SignatureCreationError("Wallet returned an empty signature")
        return signature
