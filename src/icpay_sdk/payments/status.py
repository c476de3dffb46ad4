"""
Transaction status normalization
"""

from enum import Enum
from typing import Any

from icpay_sdk.payments.variants import variant_tag
from icpay_sdk.types import TransactionStatus


class BackendStatus(str, Enum):
    """Status variants recorded by the tracking service"""

    PENDING = "Pending"
    PROCESSED = "Processed"
    RECEIVED = "Received"
    COMPLETED = "Completed"
    FAILED = "Failed"


_CANONICAL = {
    BackendStatus.COMPLETED.value.lower(): TransactionStatus.COMPLETED,
    BackendStatus.FAILED.value.lower(): TransactionStatus.FAILED,
}


def normalize_status(raw: Any) -> TransactionStatus:
    """
    Map a raw tracking-service status onto the canonical status.

    Completed maps to completed, Failed (with or without a reason) to failed.
    Pending, Processed, Received, unknown tags and missing values all map to
    pending. Never raises.
    """
    if isinstance(raw, TransactionStatus):
        return raw
    if isinstance(raw, BackendStatus):
        tag: Any = raw.value
    else:
        tag, _ = variant_tag(raw)
    if not isinstance(tag, str):
        return TransactionStatus.PENDING
    return _CANONICAL.get(tag.strip().lower(), TransactionStatus.PENDING)


def failure_reason(raw: Any) -> str | None:
    """Reason attached to a ``Failed`` variant, if any"""
    tag, payload = variant_tag(raw)
    if tag is not None and tag.lower() == "failed" and payload is not None:
        return str(payload)
    return None
