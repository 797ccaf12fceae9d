"""
Tests for minor/major unit conversion.
"""

import pytest
from decimal import Decimal

from payments.money import (
    currency_exponent,
    format_amount,
    parse_amount,
    to_major_units,
    to_minor_units,
)


class TestToMinorUnits:

    @pytest.mark.parametrize('amount, expected', [
        (Decimal('10.00'), 1000),
        (Decimal('10.5'), 1050),
        (Decimal('0.01'), 1),
        ('19.99', 1999),
        (10.1, 1010),
        (7, 700),
    ])
    def test_two_decimal_currency(self, amount, expected):
        assert to_minor_units(amount, 'usd') == expected

    @pytest.mark.parametrize('amount, expected', [
        (Decimal('0.125'), 12),
        (Decimal('0.135'), 14),
        (Decimal('1.005'), 100),
    ])
    def test_rounds_half_even(self, amount, expected):
        assert to_minor_units(amount, 'usd') == expected

    def test_zero_decimal_currency(self):
        assert to_minor_units(Decimal('500'), 'JPY') == 500
        assert to_minor_units(Decimal('500.5'), 'jpy') == 500


class TestToMajorUnits:

    def test_exact_conversion(self):
        assert to_major_units(1999, 'usd') == Decimal('19.99')
        assert to_major_units(500, 'jpy') == Decimal('500')

    def test_whole_cent_amounts_survive_conversion(self):
        for amount in (Decimal('0.01'), Decimal('10.00'), Decimal('12345.67')):
            assert to_major_units(to_minor_units(amount, 'eur'), 'eur') == amount


class TestFormatting:

    def test_format_amount(self):
        assert format_amount(Decimal('10.5'), 'usd') == '10.50'
        assert format_amount(Decimal('1500'), 'JPY') == '1500'
        assert format_amount('0.125', 'usd') == '0.12'

    def test_parse_amount(self):
        assert parse_amount('42.00') == Decimal('42.00')

    def test_currency_exponent(self):
        assert currency_exponent('usd') == 2
        assert currency_exponent('KRW') == 0
        assert currency_exponent('') == 2
