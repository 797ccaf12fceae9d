"""
Money conversion helpers used at the gateway boundary.

Requests and results carry Decimal amounts in major units. Providers that
expect minor units (cents, paise) get integers produced here with
round-half-even; reading minor units back is exact.
"""

from decimal import Decimal, ROUND_HALF_EVEN
from typing import Union

# Currencies without a minor unit, as listed by Stripe
ZERO_DECIMAL_CURRENCIES = frozenset({
    'bif', 'clp', 'djf', 'gnf', 'jpy', 'kmf', 'krw', 'mga',
    'pyg', 'rwf', 'ugx', 'vnd', 'vuv', 'xaf', 'xof', 'xpf',
})

Number = Union[Decimal, int, str, float]


def _as_decimal(amount: Number) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    # str() first so 10.1 does not turn into 10.0999999...
    return Decimal(str(amount))


def currency_exponent(currency: str) -> int:
    """Number of minor-unit digits for a currency (2 unless zero-decimal)."""
    if currency and currency.lower() in ZERO_DECIMAL_CURRENCIES:
        return 0
    return 2


def to_minor_units(amount: Number, currency: str = 'usd') -> int:
    """
    Convert a major-unit amount to integer minor units.

    Example:
        >>> to_minor_units(Decimal('10.00'), 'usd')
        1000
        >>> to_minor_units(Decimal('0.125'), 'usd')
        12
    """
    scaled = _as_decimal(amount).scaleb(currency_exponent(currency))
    return int(scaled.quantize(Decimal('1'), rounding=ROUND_HALF_EVEN))


def to_major_units(minor: int, currency: str = 'usd') -> Decimal:
    """Convert integer minor units back to a Decimal major-unit amount."""
    return Decimal(int(minor)).scaleb(-currency_exponent(currency))


def format_amount(amount: Number, currency: str = 'usd') -> str:
    """
    Format an amount as a plain decimal string with the currency's precision.

    Used for providers that take amounts as strings ("10.00", "1500" for JPY).
    """
    quantum = Decimal(1).scaleb(-currency_exponent(currency))
    return format(_as_decimal(amount).quantize(quantum, rounding=ROUND_HALF_EVEN), 'f')


def parse_amount(value: Union[str, int, float]) -> Decimal:
    """Parse a provider decimal string into a Decimal."""
    return _as_decimal(value)
