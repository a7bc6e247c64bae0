"""
Rental pricing.

A rental is charged per started day: any part of a day counts as a full day.
Callers validate that ``end`` is after ``start`` before pricing a line.
Amounts are ``Decimal`` values rounded to whole cents.
"""
import math
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

ONE_DAY = timedelta(days=1)
CENT = Decimal('0.01')


def to_money(value):
    """Decimal amount in cents; floats go through ``str`` so 0.1 stays 0.10"""
    if value is None:
        return None
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def money_out(value):
    """JSON-friendly rendering of a stored amount"""
    return float(value) if value is not None else None


def rental_days(start, end):
    """Whole days between start and end, fractional days rounded up"""
    return math.ceil((end - start) / ONE_DAY)


def rental_total(start, end, price_per_day, quantity):
    """Total price for renting ``quantity`` units from start to end"""
    return (rental_days(start, end) * to_money(price_per_day) * quantity).quantize(CENT)
