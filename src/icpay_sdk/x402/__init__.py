"""
x402 payment headers for EVM chains
"""

from icpay_sdk.x402.builders import (
    build_and_sign_x402_payment_header,
    build_permit_typed_data,
    build_transfer_with_authorization_typed_data,
    build_x402_header_from_authorization,
    create_nonce,
    decode_x402_header,
    encode_x402_header,
    make_eip712_domain,
)
from icpay_sdk.x402.signers import EvmTypedDataSigner, LocalEvmSigner, Web3ProviderSigner
from icpay_sdk.x402.types import (
    Eip712Domain,
    PermitMessage,
    TransferWithAuthorizationMessage,
    X402AcceptExtra,
    X402Acceptance,
    X402Authorization,
    X402Header,
    X402Payload,
)

__all__ = [
    # Builders
    "build_and_sign_x402_payment_header",
    "build_permit_typed_data",
    "build_transfer_with_authorization_typed_data",
    "build_x402_header_from_authorization",
    "create_nonce",
    "decode_x402_header",
    "encode_x402_header",
    "make_eip712_domain",
    # Signers
    "EvmTypedDataSigner",
    "LocalEvmSigner",
    "Web3ProviderSigner",
    # Types
    "Eip712Domain",
    "PermitMessage",
    "TransferWithAuthorizationMessage",
    "X402AcceptExtra",
    "X402Acceptance",
    "X402Authorization",
    "X402Header",
    "X402Payload",
]
