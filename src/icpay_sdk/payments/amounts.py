"""
AmountNormalizer - turns payment requests into integer base-unit amounts
"""

import logging
import math
import re
from collections.abc import Awaitable, Callable
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Any

from icpay_sdk.exceptions import InvalidUsdAmountError, PriceNotAvailableError, ValidationError
from icpay_sdk.types import PriceCalculationResult, PriceQuote

logger = logging.getLogger(__name__)

QuoteSource = Callable[[str], Awaitable[PriceQuote | None]]

_BASE_UNITS = re.compile(r"[0-9]+")


def format_amount(base_units: int, decimals: int) -> str:
    """Exact decimal representation with exactly ``decimals`` fractional digits"""
    value = Decimal(base_units).scaleb(-decimals)
    return f"{value:.{decimals}f}"


def format_balance(base_units: int | str, decimals: int) -> str:
    """Human readable balance without trailing fractional zeros"""
    units = int(base_units)
    sign = "-" if units < 0 else ""
    whole, fraction = divmod(abs(units), 10**decimals)
    fraction_str = str(fraction).rjust(decimals, "0").rstrip("0") if decimals else ""
    return f"{sign}{whole}{'.' + fraction_str if fraction_str else ''}"


def _to_decimal(value: Any) -> Decimal | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        # repr keeps the shortest round-tripping form, so 0.1 stays 0.1
        return Decimal(repr(value))
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return result if result.is_finite() else None


class AmountNormalizer:
    """
    Converts request amounts to base units.

    Base-unit amounts pass through unchanged; USD amounts are converted with a
    price quote and floored so the payer is never charged more than requested.
    """

    def __init__(self, quote_source: QuoteSource | None = None) -> None:
        self._quote_source = quote_source

    @staticmethod
    def normalize_base_units(amount: int | str) -> int:
        """
        Parse an integer base-unit amount.

        Raises:
            ValidationError: If the amount is negative or not an integer
        """
        if isinstance(amount, bool):
            raise ValidationError(f"Invalid amount: {amount!r}")
        if isinstance(amount, int):
            value = amount
        elif isinstance(amount, str) and _BASE_UNITS.fullmatch(amount.strip()):
            value = int(amount.strip())
        else:
            raise ValidationError(
                f"Amount must be a non-negative integer in base units, got {amount!r}"
            )
        if value < 0:
            raise ValidationError(f"Amount must not be negative, got {value}")
        return value

    @staticmethod
    def parse_usd_amount(usd_amount: Any) -> Decimal:
        """
        Parse a strictly positive, finite USD amount.

        Raises:
            InvalidUsdAmountError: If the amount is not usable
        """
        value = _to_decimal(usd_amount)
        if value is None or value <= 0:
            raise InvalidUsdAmountError(f"USD amount must be greater than 0, got {usd_amount!r}")
        return value

    @staticmethod
    def usd_to_base_units(usd_amount: Decimal, price: float, decimals: int) -> int:
        """``floor(usd / price * 10**decimals)`` evaluated exactly"""
        scaled = (usd_amount * (Decimal(10) ** decimals)) / Decimal(repr(price))
        return int(scaled.to_integral_value(rounding=ROUND_FLOOR))

    async def get_quote(self, ledger_canister_id: str) -> PriceQuote:
        """
        Fetch a usable price quote.

        Raises:
            PriceNotAvailableError: If there is no quote or its price is not positive
        """
        if self._quote_source is None:
            raise PriceNotAvailableError(ledger_canister_id)
        quote = await self._quote_source(ledger_canister_id)
        if quote is None or quote.price is None or not math.isfinite(quote.price):
            raise PriceNotAvailableError(ledger_canister_id)
        if quote.price <= 0:
            raise PriceNotAvailableError(ledger_canister_id)
        return quote

    async def from_usd(self, usd_amount: Any, ledger_canister_id: str) -> PriceCalculationResult:
        """
        Convert a USD amount into base units of ``ledger_canister_id``.

        Raises:
            InvalidUsdAmountError: If the USD amount is not strictly positive and finite
            PriceNotAvailableError: If the ledger has no usable price
        """
        usd = self.parse_usd_amount(usd_amount)
        quote = await self.get_quote(ledger_canister_id)

        base_units = self.usd_to_base_units(usd, quote.price, quote.decimals)
        logger.debug(
            "Converted %s USD to %s base units of %s at price %s",
            usd,
            base_units,
            ledger_canister_id,
            quote.price,
        )
        return PriceCalculationResult(
            usd_amount=float(usd),
            ledger_canister_id=quote.ledger_canister_id,
            ledger_symbol=quote.symbol,
            ledger_name=quote.name,
            current_price=quote.price,
            price_timestamp=quote.timestamp,
            token_amount_human=format_amount(base_units, quote.decimals),
            token_amount_decimals=str(base_units),
            decimals=quote.decimals,
        )
