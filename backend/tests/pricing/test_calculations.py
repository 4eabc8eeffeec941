from decimal import Decimal
from types import SimpleNamespace

import pytest

from devisfacture.pricing.calculations import (
    document_totals,
    format_amount,
    format_rate,
    is_allowed_tax_rate,
    line_total_ht,
    requires_vat_exemption_notice,
    resolve_default_tax_rate,
    to_amount,
)


def _line(quantity, price, rate):
    return SimpleNamespace(quantity=quantity, unit_price_ht=price, tax_rate=rate)


def test_document_totals_mixed_rates():
    """Deux lignes à 20 % et 5.5 % : TVA calculée ligne par ligne."""
    totals = document_totals([_line("2", "100", "20"), _line("1", "50", "5.5")])
    assert totals.total_ht == Decimal("250")
    assert totals.total_tva == Decimal("42.75")
    assert totals.total_ttc == Decimal("292.75")


def test_document_totals_empty():
    totals = document_totals([])
    assert totals.total_ht == totals.total_tva == totals.total_ttc == Decimal("0")


def test_totals_are_not_rounded_before_display():
    totals = document_totals([_line("3", "0.333", "20")])
    assert totals.total_ht == Decimal("0.999")
    assert format_amount(totals.total_ht) == "1.00"


@pytest.mark.parametrize("value", [None, "abc", "-5", float("inf"), True])
def test_invalid_inputs_count_as_zero(value):
    assert to_amount(value) == Decimal("0")
    assert line_total_ht(value, "10") == Decimal("0")


def test_format_amount_two_decimals():
    assert format_amount(Decimal("12.345")) == "12.35"
    assert format_amount(None) == "0.00"
    assert format_amount(Decimal("-40")) == "-40.00"


def test_format_rate_drops_trailing_zeros():
    assert format_rate(Decimal("20.00")) == "20"
    assert format_rate(Decimal("5.50")) == "5.5"


def test_allowed_tax_rates():
    assert is_allowed_tax_rate("5.5")
    assert is_allowed_tax_rate(Decimal("0"))
    assert not is_allowed_tax_rate("7")
    assert not is_allowed_tax_rate(None)


def test_default_tax_rate_resolution_order():
    # Paramètres entreprise > profil > non assujetti > 20
    assert resolve_default_tax_rate("10", "5.5", True) == Decimal("10")
    assert resolve_default_tax_rate(None, "5.5", True) == Decimal("5.5")
    assert resolve_default_tax_rate(None, None, False) == Decimal("0")
    assert resolve_default_tax_rate(None, None, None) == Decimal("20")
    assert resolve_default_tax_rate("0", None, True) == Decimal("0")


def test_vat_exemption_notice_only_for_zero_rate():
    assert requires_vat_exemption_notice(Decimal("0"))
    assert not requires_vat_exemption_notice(Decimal("5.5"))
