"""VAT and payment-split arithmetic over decimal-as-string amounts.

Amounts arrive from free-text form fields and are stored as strings, so the
parser is forgiving: anything it cannot read counts as zero. Amounts beyond
``MAX_AMOUNT`` also count as zero, which keeps every derived value well inside
the default decimal context.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from portal.core.stages import BILLABLE_MILESTONES, COMPLETED_STAGE

VAT_PERCENTAGE = Decimal("21")
VAT_RATE = VAT_PERCENTAGE / Decimal("100")

ZERO = Decimal("0")
Q2 = Decimal("0.01")
HALF = Decimal("0.5")
MAX_AMOUNT = Decimal("1000000000000")
# Fixed estimate used to report USD revenue in euros.
USD_TO_EUR_RATE = Decimal("0.92")

_STRIP_CHARS = ("€", "$", ",", " ", " ")


class AmountError(ValueError):
    """Raised by ``read_amount`` for input that is not a usable amount."""


def read_amount(value: str | Decimal | int | float) -> Decimal:
    """Strictly parse an amount, raising ``AmountError`` when it is unusable."""

    if value is None or isinstance(value, bool):
        raise AmountError("Amount is missing.")
    if isinstance(value, (int, float)):
        value = str(value)

    if isinstance(value, Decimal):
        amount = value
    else:
        cleaned = value.strip()
        for char in _STRIP_CHARS:
            cleaned = cleaned.replace(char, "")
        if not cleaned:
            raise AmountError("Amount is empty.")
        try:
            amount = Decimal(cleaned)
        except InvalidOperation as exc:
            raise AmountError(f"'{value}' is not a number.") from exc

    if not amount.is_finite():
        raise AmountError("Amount must be finite.")
    if abs(amount) > MAX_AMOUNT:
        raise AmountError(f"Amount exceeds {MAX_AMOUNT}.")
    return amount


def parse_amount(value: str | Decimal | int | float | None) -> Decimal:
    """Parse a decimal amount, returning zero for null or unreadable input."""

    try:
        return read_amount(value)
    except AmountError:
        return ZERO


def vat(subtotal: str | Decimal | None) -> Decimal:
    return parse_amount(subtotal) * VAT_RATE


def total(subtotal: str | Decimal | None) -> Decimal:
    amount = parse_amount(subtotal)
    return amount + amount * VAT_RATE


def payment_amount(subtotal: str | Decimal | None, stage: str | None) -> Decimal | None:
    """Amount owed at ``stage`` under the two-installment model.

    Both billable milestones owe half of the VAT-inclusive total. The terminal
    stage returns ``None``: nothing further is owed, which callers render
    differently from an amount of zero.
    """

    if stage == COMPLETED_STAGE:
        return None
    if stage in BILLABLE_MILESTONES:
        return total(subtotal) * HALF
    return ZERO


def to_eur(amount: Decimal, currency: str = "EUR") -> Decimal:
    if currency == "USD":
        return amount * USD_TO_EUR_RATE
    return amount


def _cents(amount: Decimal) -> Decimal:
    # Derived totals may exceed MAX_AMOUNT by the VAT factor but never by ten times.
    if not amount.is_finite() or abs(amount) > MAX_AMOUNT * 10:
        amount = ZERO
    return amount.quantize(Q2, rounding=ROUND_HALF_UP)


def to_money_string(amount: Decimal) -> str:
    """Quantize to cents for decimal-as-string storage."""

    return str(_cents(amount))


def format_currency(amount: Decimal, currency: str = "EUR") -> str:
    symbol = "$" if currency == "USD" else "€"
    space = " " if currency == "EUR" else ""
    return f"{symbol}{space}{_cents(amount):,.2f}"
