"""
Types for x402 payment headers and their EIP-712 payloads
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

SCHEME_EXACT = "exact"
TRANSFER_AUTH_PRIMARY_TYPE = "TransferWithAuthorization"
PERMIT_PRIMARY_TYPE = "Permit"

# Default authorization lifetime when the acceptance does not set one
DEFAULT_MAX_TIMEOUT_SECONDS = 300
# validAfter is backdated by a day to absorb wallet clock skew
VALID_AFTER_BACKDATE_SECONDS = 86400


class Eip712Domain(BaseModel):
    """EIP-712 domain of the token contract"""

    name: str
    version: str
    chain_id: Optional[int] = Field(None, alias="chainId")
    verifying_contract: str = Field(alias="verifyingContract")

    class Config:
        populate_by_name = True

    def to_typed_data(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class TransferWithAuthorizationMessage(BaseModel):
    """EIP-3009 transferWithAuthorization message"""

    from_address: str = Field(alias="from")
    to: str
    value: str
    valid_after: str = Field(alias="validAfter")
    valid_before: str = Field(alias="validBefore")
    nonce: str  # 32-byte hex string (0x...)

    class Config:
        populate_by_name = True


class PermitMessage(BaseModel):
    """EIP-2612 permit message"""

    owner: str
    spender: str
    value: str
    nonce: str
    deadline: str


class X402AcceptExtra(BaseModel):
    """Extra fields of an x402 acceptance"""

    intent_id: Optional[str] = Field(None, alias="intentId")
    provider: Optional[str] = None
    ledger_id: Optional[str] = Field(None, alias="ledgerId")
    facilitator_url: Optional[str] = Field(None, alias="facilitatorUrl")
    name: Optional[str] = None
    eip3009_version: Optional[str] = Field(None, alias="eip3009Version")
    primary_type: Optional[str] = Field(None, alias="primaryType")

    class Config:
        populate_by_name = True
        extra = "allow"


class X402Acceptance(BaseModel):
    """Payment requirement advertised by an x402 resource"""

    scheme: str = SCHEME_EXACT
    network: str
    max_amount_required: str = Field(alias="maxAmountRequired")
    resource: Optional[str] = None
    description: Optional[str] = None
    mime_type: Optional[str] = Field(None, alias="mimeType")
    pay_to: str = Field(alias="payTo")
    max_timeout_seconds: Optional[int] = Field(None, alias="maxTimeoutSeconds")
    asset: Optional[str] = None
    extra: X402AcceptExtra = Field(default_factory=X402AcceptExtra)

    class Config:
        populate_by_name = True

    @property
    def chain_id(self) -> Optional[int]:
        """Numeric chain id from ``network``, or None when it is not a positive integer"""
        try:
            chain_id = int(self.network)
        except (TypeError, ValueError):
            return None
        return chain_id if chain_id > 0 else None


class X402Authorization(BaseModel):
    """Signed authorization carried by an x402 header"""

    from_address: str = Field(alias="from")
    to: str
    value: str
    valid_after: str = Field(alias="validAfter")
    valid_before: str = Field(alias="validBefore")
    nonce: str

    class Config:
        populate_by_name = True


class X402Payload(BaseModel):
    authorization: X402Authorization
    signature: str


class X402Header(BaseModel):
    """Decoded X-PAYMENT header"""

    x402_version: int = Field(1, alias="x402Version")
    scheme: str = SCHEME_EXACT
    network: str
    payload: X402Payload

    class Config:
        populate_by_name = True
