from decimal import Decimal

import pytest

from icpay_sdk.exceptions import (
    ErrorCode,
    InvalidUsdAmountError,
    PriceNotAvailableError,
    ValidationError,
)
from icpay_sdk.payments.amounts import AmountNormalizer, format_amount, format_balance
from icpay_sdk.types import PriceQuote


def quote_source(price, decimals=8):
    async def source(ledger_canister_id):
        return PriceQuote(
            ledger_canister_id=ledger_canister_id,
            price=price,
            decimals=decimals,
            symbol="ICP",
            name="Internet Computer",
        )

    return source


@pytest.mark.parametrize("amount", [0, 1, 100_000_000, "100000000", " 42 "])
def test_base_units_pass_through(amount):
    assert AmountNormalizer.normalize_base_units(amount) == int(str(amount).strip())


def test_base_units_keep_precision_beyond_float():
    amount = "123456789012345678901234567890"
    assert AmountNormalizer.normalize_base_units(amount) == int(amount)


@pytest.mark.parametrize(
    "amount", [-1, "-5", "1.5", "abc", "", True, 1.0, None, "²", "١٢", "1_000"]
)
def test_invalid_base_units_rejected(amount):
    with pytest.raises(ValidationError) as exc:
        AmountNormalizer.normalize_base_units(amount)
    assert exc.value.code == ErrorCode.VALIDATION_ERROR


def test_usd_conversion_floors_exactly():
    # 10 USD at 3 USD per token with 8 decimals = 333333333.33... base units
    assert AmountNormalizer.usd_to_base_units(Decimal("10"), 3.0, 8) == 333_333_333


def test_usd_conversion_avoids_float_drift():
    # 0.3 / 0.1 is 2.9999999999999996 in binary floating point
    assert AmountNormalizer.usd_to_base_units(Decimal("0.3"), 0.1, 0) == 3


@pytest.mark.parametrize("usd", [0, -1, "0", "-0.01", "nan", "inf", float("inf"), "abc", None])
def test_invalid_usd_amount(usd):
    with pytest.raises(InvalidUsdAmountError) as exc:
        AmountNormalizer.parse_usd_amount(usd)
    assert exc.value.code == ErrorCode.INVALID_USD_AMOUNT


@pytest.mark.anyio
async def test_from_usd_builds_result():
    normalizer = AmountNormalizer(quote_source(price=5.0, decimals=8))

    result = await normalizer.from_usd("12.5", "ryjl3-tyaaa-aaaaa-aaaba-cai")

    assert result.token_amount_decimals == "250000000"
    assert result.token_amount_human == "2.50000000"
    assert result.current_price == 5.0
    assert result.ledger_symbol == "ICP"
    assert result.usd_amount == 12.5


@pytest.mark.anyio
@pytest.mark.parametrize("price", [None, 0.0, -2.0, float("nan")])
async def test_missing_or_non_positive_price(price):
    normalizer = AmountNormalizer(quote_source(price=price))

    with pytest.raises(PriceNotAvailableError) as exc:
        await normalizer.from_usd(10, "ledger")
    assert exc.value.code == ErrorCode.PRICE_NOT_AVAILABLE


@pytest.mark.anyio
async def test_no_quote_source():
    with pytest.raises(PriceNotAvailableError):
        await AmountNormalizer().from_usd(1, "ledger")


@pytest.mark.anyio
async def test_invalid_usd_checked_before_quote():
    calls = []

    async def source(ledger_canister_id):
        calls.append(ledger_canister_id)
        return None

    with pytest.raises(InvalidUsdAmountError):
        await AmountNormalizer(source).from_usd(0, "ledger")
    assert calls == []


def test_format_helpers():
    assert format_amount(150_000_000, 8) == "1.50000000"
    assert format_amount(5, 0) == "5"
    assert format_balance(150_000_000, 8) == "1.5"
    assert format_balance("10000000", 8) == "0.1"
    assert format_balance(200_000_000, 8) == "2"
    assert format_balance(7, 0) == "7"
