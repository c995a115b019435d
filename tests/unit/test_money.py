"""
Tests for money values and payment vocabularies (``club_kernel.domain.money``).
"""

import pytest

from club_kernel.domain.money import (
    DEFAULT_AMOUNTS,
    PaymentMethod,
    PaymentStatus,
    format_amount,
    parse_amount,
    parse_payment_method,
    payment_method_label,
)
from club_kernel.exceptions import ValidationError


class TestFormatAmount:
    @pytest.mark.parametrize(
        "amount, expected",
        [
            (0, "0 FCFA"),
            (999, "999 FCFA"),
            (1000, "1 000 FCFA"),
            (10000, "10 000 FCFA"),
            (1234567, "1 234 567 FCFA"),
            (-2500, "-2 500 FCFA"),
        ],
    )
    def test_groups_thousands_with_spaces(self, amount, expected):
        assert format_amount(amount) == expected

    def test_without_symbol(self):
        assert format_amount(15000, include_symbol=False) == "15 000"

    def test_custom_symbol_round_trips(self):
        assert format_amount(15000, symbol="GHS") == "15 000 GHS"
        assert parse_amount("15 000 ghs", symbol="GHS") == 15000

    @pytest.mark.parametrize("bad", [10.5, "1000", True, None])
    def test_rejects_non_integers(self, bad):
        with pytest.raises(ValidationError):
            format_amount(bad)


class TestParseAmount:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("10 000 FCFA", 10000),
            ("10 000 fcfa", 10000),
            ("1.500", 1500),
            ("1,500", 1500),
            ("-2 500", -2500),
            ("  750  ", 750),
            (42, 42),
        ],
    )
    def test_parses_display_forms(self, text, expected):
        assert parse_amount(text) == expected

    @pytest.mark.parametrize("bad", ["", "FCFA", "abc", "12a", "-"])
    def test_rejects_non_numeric(self, bad):
        with pytest.raises(ValidationError):
            parse_amount(bad)

    def test_inverse_of_format(self):
        for amount in (0, 7, 1000, 987654321, -15000):
            assert parse_amount(format_amount(amount)) == amount


class TestPaymentMethod:
    def test_stored_values(self):
        assert parse_payment_method("cash") is PaymentMethod.CASH
        assert parse_payment_method("mobile_money") is PaymentMethod.MOBILE_MONEY

    def test_legacy_mobile_alias(self):
        assert parse_payment_method("mobile") is PaymentMethod.MOBILE_MONEY

    def test_display_label(self):
        assert parse_payment_method("Virement bancaire") is PaymentMethod.BANK_TRANSFER

    def test_enum_passthrough(self):
        assert parse_payment_method(PaymentMethod.CARD) is PaymentMethod.CARD

    def test_unknown_method(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_payment_method("bitcoin")
        assert exc_info.value.field == "payment_method"

    def test_labels(self):
        assert PaymentMethod.CASH.label == "Espèces"
        assert payment_method_label("mobile") == "Mobile Money"
        assert payment_method_label(None) == ""
        assert payment_method_label("cheque") == "cheque"


def test_status_values_are_strings():
    assert PaymentStatus.PAID == "paid"
    assert {s.value for s in PaymentStatus} == {"pending", "paid", "exempted"}


def test_default_amounts():
    assert DEFAULT_AMOUNTS == {"course_price": 1000, "annual_registration": 10000}
