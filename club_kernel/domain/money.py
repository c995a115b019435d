"""
Money values, payment vocabularies and display helpers.

Amounts are plain ``int`` whole units of the organisation currency (XAF has
no minor unit).  Floats never reach this module.
"""

from enum import Enum

from club_kernel.exceptions import ValidationError

DEFAULT_COURSE_FEE = 1000
DEFAULT_ANNUAL_FEE = 10000

DEFAULT_AMOUNTS: dict[str, int] = {
    "course_price": DEFAULT_COURSE_FEE,
    "annual_registration": DEFAULT_ANNUAL_FEE,
}

CURRENCY_SYMBOL = "FCFA"


class PaymentStatus(str, Enum):
    """Shared by enrollment payments and annual registrations."""

    PENDING = "pending"
    PAID = "paid"
    EXEMPTED = "exempted"


class PaymentMethod(str, Enum):
    """Methods administrators record for member payments."""

    CASH = "cash"
    MOBILE_MONEY = "mobile_money"
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"
    EXEMPTED = "exempted"

    @property
    def label(self) -> str:
        return PAYMENT_METHOD_LABELS[self]


PAYMENT_METHOD_LABELS: dict[PaymentMethod, str] = {
    PaymentMethod.CASH: "Espèces",
    PaymentMethod.MOBILE_MONEY: "Mobile Money",
    PaymentMethod.BANK_TRANSFER: "Virement bancaire",
    PaymentMethod.CARD: "Carte bancaire",
    PaymentMethod.EXEMPTED: "Exempté",
}

# Legacy records store "mobile" for mobile money
_METHOD_ALIASES = {"mobile": PaymentMethod.MOBILE_MONEY}
_LABEL_TO_METHOD = {label: method for method, label in PAYMENT_METHOD_LABELS.items()}


def parse_payment_method(value: "str | PaymentMethod") -> PaymentMethod:
    """Accept an enum member, a stored value, a legacy alias or a display label."""
    if isinstance(value, PaymentMethod):
        return value
    if value in _METHOD_ALIASES:
        return _METHOD_ALIASES[value]
    if value in _LABEL_TO_METHOD:
        return _LABEL_TO_METHOD[value]
    try:
        return PaymentMethod(value)
    except ValueError:
        raise ValidationError("payment_method", f"unknown payment method {value!r}") from None


def payment_method_label(value: "str | PaymentMethod | None") -> str:
    """Display label; unknown stored values are returned unchanged."""
    if value is None:
        return ""
    try:
        return parse_payment_method(value).label
    except ValidationError:
        return str(value)


def format_amount(
    amount: int, include_symbol: bool = True, symbol: str = CURRENCY_SYMBOL
) -> str:
    """
    Group thousands with a space, French style.  ``symbol`` is normally the
    organisation's ``currency_symbol``.

        >>> format_amount(10000)
        '10 000 FCFA'
        >>> format_amount(-2500, include_symbol=False)
        '-2 500'
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError("amount", f"expected whole units, got {amount!r}")
    grouped = f"{abs(amount):,}".replace(",", " ")
    if amount < 0:
        grouped = "-" + grouped
    return f"{grouped} {symbol}" if include_symbol else grouped


def parse_amount(text: "str | int", symbol: str = CURRENCY_SYMBOL) -> int:
    """
    Inverse of format_amount.  Strips the currency symbol, whitespace
    (including narrow no-break spaces), dots and commas used as separators.

    Raises:
        ValidationError: if nothing numeric remains.
    """
    if isinstance(text, int) and not isinstance(text, bool):
        return text
    cleaned = str(text).upper().replace(symbol.upper(), "")
    cleaned = "".join(ch for ch in cleaned if not ch.isspace() and ch not in ".,")
    negative = cleaned.startswith("-")
    digits = cleaned[1:] if negative else cleaned
    if not digits.isdigit():
        raise ValidationError("amount", f"not an amount: {text!r}")
    value = int(digits)
    return -value if negative else value
