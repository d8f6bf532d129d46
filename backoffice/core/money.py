"""Money parsing and rounding helpers"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

ZERO = Decimal('0.00')
TWO_PLACES = Decimal('0.01')


def quantize_money(value):
    """Round to kopecks/cents, half up"""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def to_money(value, allow_negative=False, allow_none=False):
    """
    Parse user input into a money Decimal.

    Accepts Decimals, ints, floats and strings such as ``"1 234,56"`` or
    ``"-15.5"``. Raises ValueError for empty, non-numeric or (unless
    ``allow_negative``) negative input.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if allow_none:
            return None
        raise ValueError('Amount is required')

    if isinstance(value, bool):
        raise ValueError(f'Invalid amount: {value}')
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    else:
        text = str(value).replace('\xa0', '').replace(' ', '').replace(',', '.')
        try:
            amount = Decimal(text)
        except InvalidOperation:
            raise ValueError(f'Invalid amount: {value}')

    if not amount.is_finite():
        raise ValueError(f'Invalid amount: {value}')
    if amount < 0 and not allow_negative:
        raise ValueError('Amount cannot be negative')
    return quantize_money(amount)


def percent_of(amount, percent):
    return quantize_money(Decimal(amount) * Decimal(percent) / Decimal('100'))


def percentage(part, whole):
    """part/whole in percent with two decimals; 0 when whole is 0"""
    if not whole:
        return ZERO
    return quantize_money(Decimal(part) * Decimal('100') / Decimal(whole))
