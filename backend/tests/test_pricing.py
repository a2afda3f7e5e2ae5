from decimal import Decimal

import pytest

from posledger.errors import InvalidRate
from posledger.services.pricing import (
    apply_line_adjustments,
    convert,
    format_price,
    line_tax,
    to_cents,
)


RATES = {"USD": Decimal("36.5"), "EUR": Decimal("39.2")}


class TestConvert:
    def test_base_currency_is_identity(self):
        assert convert(Decimal("110"), "BS", RATES, base_currency="BS") == Decimal("110")

    def test_divides_by_rate(self):
        assert convert(Decimal("73"), "USD", RATES, base_currency="BS") == Decimal("2")

    def test_code_is_case_insensitive(self):
        assert convert(Decimal("73"), "usd", RATES, base_currency="BS") == Decimal("2")

    def test_unknown_currency(self):
        with pytest.raises(InvalidRate) as exc:
            convert(Decimal("1"), "GBP", RATES, base_currency="BS")
        assert exc.value.details["currency"] == "GBP"

    @pytest.mark.parametrize("rate", [Decimal("0"), Decimal("-3")])
    def test_non_positive_rate(self, rate):
        with pytest.raises(InvalidRate):
            convert(Decimal("1"), "USD", {"USD": rate}, base_currency="BS")


class TestLineAdjustments:
    def test_discount_applied(self):
        assert apply_line_adjustments(2000, Decimal("10"), True) == Decimal("1800")

    def test_discount_not_applied(self):
        assert apply_line_adjustments(2000, Decimal("10"), False) == Decimal("2000")

    def test_full_discount(self):
        assert apply_line_adjustments(2000, Decimal("100"), True) == Decimal("0")

    def test_tax_on_taxed_line(self):
        assert line_tax(Decimal("1800"), Decimal("1"), True) == Decimal("180")

    def test_no_tax_on_untaxed_line(self):
        assert line_tax(Decimal("1000"), Decimal("2"), False) == Decimal("0")

    def test_custom_tax_rate(self):
        assert line_tax(Decimal("1000"), Decimal("1"), True, Decimal("16")) == Decimal("160")


def test_to_cents_rounds_half_up():
    assert to_cents(Decimal("10.5")) == 11
    assert to_cents(Decimal("10.49")) == 10
    assert to_cents(Decimal("0.5")) == 1


def test_format_price():
    assert format_price(11000, "BS", RATES, base_currency="BS") == "Bs 110.00"
    assert format_price(7300, "USD", RATES, base_currency="BS") == "$ 2.00"
    assert format_price(3920, "EUR", RATES, base_currency="BS") == "€ 1.00"
