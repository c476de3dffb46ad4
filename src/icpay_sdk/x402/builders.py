"""
x402 builders - EIP-712 typed data and X-PAYMENT headers
"""

import base64
import json
import logging
import secrets
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from icpay_sdk.exceptions import ValidationError
from icpay_sdk.x402.types import (
    DEFAULT_MAX_TIMEOUT_SECONDS,
    PERMIT_PRIMARY_TYPE,
    SCHEME_EXACT,
    TRANSFER_AUTH_PRIMARY_TYPE,
    VALID_AFTER_BACKDATE_SECONDS,
    Eip712Domain,
    PermitMessage,
    TransferWithAuthorizationMessage,
    X402Acceptance,
    X402Authorization,
    X402Header,
    X402Payload,
)

if TYPE_CHECKING:
    from icpay_sdk.x402.signers import EvmTypedDataSigner

logger = logging.getLogger(__name__)

EIP712_DOMAIN_FIELDS = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

TRANSFER_WITH_AUTHORIZATION_TYPES = [
    {"name": "from", "type": "address"},
    {"name": "to", "type": "address"},
    {"name": "value", "type": "uint256"},
    {"name": "validAfter", "type": "uint256"},
    {"name": "validBefore", "type": "uint256"},
    {"name": "nonce", "type": "bytes32"},
]

PERMIT_TYPES = [
    {"name": "owner", "type": "address"},
    {"name": "spender", "type": "address"},
    {"name": "value", "type": "uint256"},
    {"name": "nonce", "type": "uint256"},
    {"name": "deadline", "type": "uint256"},
]


def _domain_type(domain: dict[str, Any]) -> list[dict[str, str]]:
    """EIP712Domain fields present in ``domain``, in canonical order"""
    return [field for field in EIP712_DOMAIN_FIELDS if field["name"] in domain]


def make_eip712_domain(
    name: str,
    version: str,
    verifying_contract: str,
    chain_id: int | None = None,
) -> Eip712Domain:
    return Eip712Domain(
        name=str(name),
        version=str(version),
        chain_id=chain_id,
        verifying_contract=str(verifying_contract),
    )


def build_transfer_with_authorization_typed_data(
    domain: Eip712Domain, message: TransferWithAuthorizationMessage
) -> dict[str, Any]:
    """eth_signTypedData_v4 payload for an EIP-3009 transfer authorization"""
    domain_data = domain.to_typed_data()
    return {
        "types": {
            "EIP712Domain": _domain_type(domain_data),
            TRANSFER_AUTH_PRIMARY_TYPE: TRANSFER_WITH_AUTHORIZATION_TYPES,
        },
        "domain": domain_data,
        "primaryType": TRANSFER_AUTH_PRIMARY_TYPE,
        "message": message.model_dump(by_alias=True),
    }


def build_permit_typed_data(domain: Eip712Domain, message: PermitMessage) -> dict[str, Any]:
    """eth_signTypedData_v4 payload for an EIP-2612 permit"""
    domain_data = domain.to_typed_data()
    return {
        "types": {
            "EIP712Domain": _domain_type(domain_data),
            PERMIT_PRIMARY_TYPE: PERMIT_TYPES,
        },
        "domain": domain_data,
        "primaryType": PERMIT_PRIMARY_TYPE,
        "message": message.model_dump(by_alias=True),
    }


def build_x402_header_from_authorization(
    network: str,
    authorization: TransferWithAuthorizationMessage,
    signature: str,
    x402_version: int = 1,
    scheme: str = SCHEME_EXACT,
) -> X402Header:
    return X402Header(
        x402_version=x402_version or 1,
        scheme=scheme or SCHEME_EXACT,
        network=network,
        payload=X402Payload(
            authorization=X402Authorization(**authorization.model_dump(by_alias=True)),
            signature=signature,
        ),
    )


def encode_x402_header(header: X402Header) -> str:
    """Base64 of the header's compact JSON"""
    data = json.dumps(header.model_dump(by_alias=True), separators=(",", ":"))
    return base64.b64encode(data.encode("utf-8")).decode("ascii")


def decode_x402_header(value: str) -> X402Header:
    """
    Parse a base64 X-PAYMENT header.

    Raises:
        ValidationError: If the header is not base64 JSON of an x402 header
    """
    try:
        data = json.loads(base64.b64decode(value, validate=True))
        return X402Header.model_validate(data)
    except ValueError as e:
        raise ValidationError(f"Invalid x402 header: {e}") from e


def create_nonce() -> str:
    """Generate a random 32-byte nonce (0x-prefixed hex)."""
    return "0x" + secrets.token_hex(32)


async def build_and_sign_x402_payment_header(
    requirement: X402Acceptance | dict[str, Any],
    signer: "EvmTypedDataSigner",
    x402_version: int = 1,
    clock: Callable[[], float] = time.time,
    nonce_factory: Callable[[], str] = create_nonce,
) -> str:
    """
    Build, sign and encode an X-PAYMENT header for an EVM acceptance.

    The primary type comes from ``extra.primaryType`` (TransferWithAuthorization
    unless it is Permit). The signed authorization is valid from one day in the
    past until ``maxTimeoutSeconds`` from now.

    Returns:
        Base64-encoded header value

    Raises:
        WalletError: If the signer has no account
        SignatureCreationError: If signing fails
    """
    if isinstance(requirement, dict):
        requirement = X402Acceptance.model_validate(requirement)

    chain_id = requirement.chain_id
    from_address = await signer.get_address(chain_id)

    now = int(clock())
    valid_after = str(now - VALID_AFTER_BACKDATE_SECONDS)
    valid_before = str(now + (requirement.max_timeout_seconds or DEFAULT_MAX_TIMEOUT_SECONDS))
    nonce = nonce_factory()

    extra = requirement.extra
    domain = make_eip712_domain(
        name=extra.name or "Token",
        version=extra.eip3009_version or "1",
        chain_id=chain_id,
        verifying_contract=requirement.asset or requirement.pay_to,
    )
    value = requirement.max_amount_required or "0"

    if extra.primary_type == PERMIT_PRIMARY_TYPE:
        typed_data = build_permit_typed_data(
            domain,
            PermitMessage(
                owner=from_address,
                spender=requirement.pay_to,
                value=value,
                nonce=str(int(nonce, 16)),
                deadline=valid_before,
            ),
        )
    else:
        typed_data = build_transfer_with_authorization_typed_data(
            domain,
            TransferWithAuthorizationMessage(
                from_address=from_address,
                to=requirement.pay_to,
                value=value,
                valid_after=valid_after,
                valid_before=valid_before,
                nonce=nonce,
            ),
        )

    logger.debug(
        "Signing x402 %s: chain=%s contract=%s value=%s",
        typed_data["primaryType"],
        chain_id,
        domain.verifying_contract,
        value,
    )
    signature = await signer.sign_typed_data(from_address, typed_data)

    header = build_x402_header_from_authorization(
        network=requirement.network,
        authorization=TransferWithAuthorizationMessage(
            from_address=from_address,
            to=requirement.pay_to,
            value=value,
            valid_after=valid_after,
            valid_before=valid_before,
            nonce=nonce,
        ),
        signature=signature,
        x402_version=x402_version,
        scheme=requirement.scheme,
    )
    return encode_x402_header(header)
