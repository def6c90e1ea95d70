# storefront/utils/money.py

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

Money = Decimal


def D(x) -> Money:
    return x if isinstance(x, Decimal) else Decimal(str(x or "0"))


def round_money(x: Money) -> Money:
    return D(x).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def parse_money(x):
    """Decimal from user input, or None when it is not a number."""
    if x is None or isinstance(x, bool):
        return None
    try:
        value = Decimal(str(x).strip())
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite():
        return None
    return value


def to_minor_units(x) -> int:
    # gateways take amounts in the smallest currency unit (paise, cents)
    return int((round_money(x) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def as_float(x):
    return float(round_money(x)) if x is not None else None
