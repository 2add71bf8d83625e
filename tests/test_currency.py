from __future__ import annotations

from decimal import Decimal

import pytest

from portal.core.currency import (
    MAX_AMOUNT,
    AmountError,
    format_currency,
    parse_amount,
    payment_amount,
    read_amount,
    to_money_string,
    total,
    vat,
)


def test_thousand_subtotal_splits_into_two_equal_payments() -> None:
    assert vat("1000") == Decimal("210")
    assert total("1000") == Decimal("1210")
    assert payment_amount("1000", "pay_first") == Decimal("605")
    assert payment_amount("1000", "pay_final") == Decimal("605")


@pytest.mark.parametrize("subtotal", ["1000", "1234.57", "0.01", "99999.99"])
def test_milestone_payments_sum_to_total(subtotal: str) -> None:
    first = payment_amount(subtotal, "pay_first")
    final = payment_amount(subtotal, "pay_final")

    assert first == final == total(subtotal) / 2
    assert (first + final).quantize(Decimal("0.01")) == total(subtotal).quantize(Decimal("0.01"))


def test_completed_stage_owes_nothing_further() -> None:
    assert payment_amount("1000", "completed") is None
    assert payment_amount("1000", "kick_off") == Decimal("0")
    assert payment_amount("1000", "deliver") == Decimal("0")
    assert payment_amount("1000", "mvp") == Decimal("0")


@pytest.mark.parametrize("raw", [None, "", "abc", "NaN", "Infinity", True])
def test_unparseable_amounts_count_as_zero(raw: object) -> None:
    assert parse_amount(raw) == Decimal("0")
    assert total(raw) == Decimal("0")


def test_parse_amount_strips_currency_formatting() -> None:
    assert parse_amount("€ 1,250.50") == Decimal("1250.50")
    assert parse_amount("$99") == Decimal("99")
    assert parse_amount(Decimal("12.5")) == Decimal("12.5")


def test_money_string_and_display_formatting() -> None:
    assert to_money_string(Decimal("605")) == "605.00"
    assert to_money_string(Decimal("0.005")) == "0.01"
    assert format_currency(Decimal("1210"), "EUR") == "€ 1,210.00"
    assert format_currency(Decimal("1210"), "USD") == "$1,210.00"


@pytest.mark.parametrize("raw", ["9e999999", "-9e999999", "1" + "0" * 27, Decimal("1E+40")])
def test_oversized_amounts_count_as_zero(raw: object) -> None:
    assert parse_amount(raw) == Decimal("0")
    assert total(raw) == Decimal("0")
    assert payment_amount(raw, "pay_first") == Decimal("0")
    assert to_money_string(total(raw)) == "0.00"


def test_largest_accepted_amount_still_formats() -> None:
    assert parse_amount(MAX_AMOUNT) == MAX_AMOUNT
    assert to_money_string(total(MAX_AMOUNT)) == "1210000000000.00"
    assert to_money_string(Decimal("1E+40")) == "0.00"


def test_read_amount_is_strict() -> None:
    assert read_amount(" € 1,000 ") == Decimal("1000")
    for raw in [None, "", "abc", "NaN", "9e999999"]:
        with pytest.raises(AmountError):
            read_amount(raw)
