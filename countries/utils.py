import random
from datetime import datetime, timezone
from decimal import Decimal

import requests


def fetch_countries(url, timeout):
    resp = requests.get(url, timeout=timeout)
    resp.raise_for_status()
    data = resp.json()
    if not isinstance(data, list):
        raise ValueError("Countries API did not return a list")
    return data


def fetch_exchange_rates(url, timeout):
    resp = requests.get(url, timeout=timeout)
    resp.raise_for_status()
    data = resp.json()
    if not isinstance(data, dict):
        raise ValueError("Exchange Rate API did not return an object")
    # API returns 'rates' mapping
    rates = data.get('rates') or {}
    if not isinstance(rates, dict):
        raise ValueError("Exchange Rate API 'rates' is not a mapping")
    return rates


def make_multiplier():
    """Fresh multiplier in [1000, 2000), drawn once per country per refresh."""
    return 1000 + random.random() * 1000


def format_currency(value, code):
    """``format_currency(Decimal("1234.5"), "USD") -> "USD 1,234.50"``"""
    amount = Decimal(value or 0).quantize(Decimal("0.01"))
    return f"{code} {amount:,}"


def get_now():
    """Return current UTC datetime (aware)."""
    return datetime.now(timezone.utc)
