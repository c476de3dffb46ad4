"""
TransferSubmitter - submits ICRC-1 transfers to the platform canister
"""

import logging
from collections.abc import Mapping
from typing import Any

from icpay_sdk.exceptions import TransactionFailedError
from icpay_sdk.payments.interfaces import LedgerFactory
from icpay_sdk.payments.variants import split_result, variant_tag
from icpay_sdk.types import LedgerTransferError

logger = logging.getLogger(__name__)

# Variant payload field -> LedgerTransferError field
_ERROR_FIELDS = {
    "BadFee": "expected_fee",
    "BadBurn": "min_burn_amount",
    "InsufficientFunds": "balance",
    "CreatedInFuture": "ledger_time",
    "Duplicate": "duplicate_of",
}


def encode_account_memo(account_canister_id: int) -> bytes:
    """
    Encode an account canister id as a transfer memo.

    The id is written as a minimal big-endian unsigned integer; zero is a
    single zero byte.

    Raises:
        ValueError: If the id is negative
    """
    if account_canister_id < 0:
        raise ValueError(f"Account canister id must not be negative: {account_canister_id}")
    if account_canister_id == 0:
        return b"\x00"
    length = (account_canister_id.bit_length() + 7) // 8
    return account_canister_id.to_bytes(length, "big")


def decode_account_memo(memo: bytes) -> int:
    """Inverse of :func:`encode_account_memo`"""
    return int.from_bytes(memo, "big")


def parse_ledger_error(err: Any) -> LedgerTransferError:
    """Parse a ledger ``Err`` payload such as ``{"BadFee": {"expected_fee": 10000}}``"""
    tag, payload = variant_tag(err)
    if tag is None:
        return LedgerTransferError(kind="Unknown", message=str(err))

    if tag == "GenericError" and isinstance(payload, Mapping):
        return LedgerTransferError(
            kind="GenericError",
            error_code=_as_int(payload.get("error_code")),
            message=payload.get("message"),
        )
    if tag in ("TooOld", "TemporarilyUnavailable"):
        return LedgerTransferError(kind=tag)

    field = _ERROR_FIELDS.get(tag)
    if field is None:
        return LedgerTransferError(kind="Unknown", message=f"{tag}: {payload}")
    value = payload.get(field) if isinstance(payload, Mapping) else payload
    return LedgerTransferError(kind=tag, **{field: _as_int(value)})


def _as_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class TransferSubmitter:
    """
    Calls the ledger's ``transfer`` with the fee left to the ledger default.

    A transfer is submitted exactly once; failures are never retried here.
    """

    def __init__(self, ledger_factory: LedgerFactory) -> None:
        self._ledger_factory = ledger_factory

    async def submit(
        self,
        ledger_canister_id: str,
        destination: str,
        amount: int,
        memo: bytes | None = None,
    ) -> int:
        """
        Transfer ``amount`` base units to ``destination``.

        Returns:
            Ledger block index of the transfer

        Raises:
            TransactionFailedError: On ledger rejection or transport failure
        """
        logger.info(
            f"Submitting transfer of {amount} on ledger {ledger_canister_id} to {destination}"
        )
        try:
            ledger = self._ledger_factory(ledger_canister_id)
            raw = await ledger.transfer(destination, amount, memo)
        except Exception as e:
            logger.error(f"Transfer on ledger {ledger_canister_id} failed: {e}")
            raise TransactionFailedError(
                f"Transfer on ledger {ledger_canister_id} failed: {e}",
                details={"ledgerCanisterId": ledger_canister_id, "error": str(e)},
            ) from e

        ok, err = split_result(raw)
        if err is not None:
            ledger_error = parse_ledger_error(err)
            logger.error(
                f"Ledger {ledger_canister_id} rejected transfer: {ledger_error.describe()}"
            )
            raise TransactionFailedError(
                f"Ledger rejected transfer: {ledger_error.describe()}",
                ledger_error=ledger_error,
            )

        block_index = _as_int(ok)
        if block_index is None or block_index < 0:
            raise TransactionFailedError(
                f"Ledger {ledger_canister_id} returned an invalid block index: {ok!r}",
                details={"result": repr(raw)},
            )
        logger.info(f"Transfer accepted at block {block_index}")
        return block_index
