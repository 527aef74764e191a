"""
Turn one raw REST Countries entry into the fields of a Country row.

``build_country_record`` never raises: anything malformed in the source
falls back to the column default.
"""
from decimal import Context, Decimal, InvalidOperation

from . import utils

RATE_PLACES = Decimal("0.000000000001")
VALUE_PLACES = Decimal("0.01")
# BigIntegerField upper bound
MAX_POPULATION = 2 ** 63 - 1
# wide enough that quantizing any estimate to cents cannot overflow
WIDE = Context(prec=60)


def coerce_population(value):
    try:
        population = int(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    if not 0 <= population <= MAX_POPULATION:
        return 0
    return population


def first_currency_code(currencies):
    if not isinstance(currencies, list) or not currencies:
        return None
    first = currencies[0]
    if not isinstance(first, dict):
        return None
    return first.get("code") or None


def lookup_rate(rates, currency_code):
    """The source rate as an exact Decimal, or None if missing or not a finite number."""
    raw = rates.get(currency_code)
    if raw is None or isinstance(raw, bool):
        return None
    try:
        rate = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        return None
    if not rate.is_finite():
        return None
    return rate


def storable_rate(rate):
    if rate is None:
        return None
    try:
        return rate.quantize(RATE_PLACES)
    except InvalidOperation:
        return None


def estimate_value(population, exchange_rate, multiplier=None):
    if population <= 0 or exchange_rate is None or exchange_rate <= 0:
        return Decimal("0.00")
    if multiplier is None:
        multiplier = utils.make_multiplier()
    value = WIDE.divide(WIDE.multiply(Decimal(population), Decimal(str(multiplier))), exchange_rate)
    return value.quantize(VALUE_PLACES, context=WIDE)


def build_country_record(raw, rates, multiplier=None):
    """
    Build the column values for one country.

    Only the first currency is kept. A country without currencies never
    touches ``rates``; a code missing from ``rates`` leaves the rate null.
    ``estimated_value`` stays 0 unless both population and rate are positive.
    """
    population = coerce_population(raw.get("population"))

    currency_code = first_currency_code(raw.get("currencies"))
    exchange_rate = stored_rate = None
    if currency_code is not None:
        exchange_rate = lookup_rate(rates, currency_code)
        stored_rate = storable_rate(exchange_rate)
        if stored_rate is None:
            exchange_rate = None

    return {
        "name": raw.get("name"),
        "capital": raw.get("capital") or None,
        "region": raw.get("region") or "Unknown",
        "population": population,
        "currency_code": currency_code,
        "exchange_rate": stored_rate,
        "estimated_value": estimate_value(population, exchange_rate, multiplier),
        "flag_url": raw.get("flag") or None,
    }
