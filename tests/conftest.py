"""Shared test fixtures."""
from unittest.mock import MagicMock, patch

import pytest
import requests

from countries.services import RefreshConfig

COUNTRIES_URL = "https://countries.test/all"
RATES_URL = "https://rates.test/latest/USD"


def fake_response(payload, status_code=200):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    else:
        resp.raise_for_status.return_value = None
    return resp


@pytest.fixture(autouse=True)
def api_settings(settings, tmp_path):
    """Point the external sources and the image cache at test locations."""
    settings.COUNTRIES_API_URL = COUNTRIES_URL
    settings.EXCHANGE_RATE_API_URL = RATES_URL
    settings.SUMMARY_CACHE_DIR = str(tmp_path / "cache")
    return settings


@pytest.fixture
def config(tmp_path):
    return RefreshConfig(
        countries_url=COUNTRIES_URL,
        exchange_rate_url=RATES_URL,
        cache_dir=str(tmp_path / "cache"),
    )


@pytest.fixture
def raw_countries():
    """Sample REST Countries v2 payload."""
    return [
        {
            "name": "United Kingdom",
            "capital": "London",
            "region": "Europe",
            "population": 67215293,
            "flag": "https://flagcdn.com/gb.svg",
            "currencies": [{"code": "GBP", "name": "British pound", "symbol": "£"}],
        },
        {
            "name": "France",
            "capital": "Paris",
            "region": "Europe",
            "population": 67391582,
            "flag": "https://flagcdn.com/fr.svg",
            "currencies": [{"code": "EUR", "name": "Euro", "symbol": "€"}],
        },
        {
            "name": "Nigeria",
            "capital": "Abuja",
            "region": "Africa",
            "population": 206139587,
            "flag": "https://flagcdn.com/ng.svg",
            "currencies": [{"code": "NGN", "name": "Nigerian naira", "symbol": "₦"}],
        },
        {
            "name": "Antarctica",
            "region": "Polar",
            "population": 1000,
            "flag": "https://flagcdn.com/aq.svg",
        },
    ]


@pytest.fixture
def rates():
    return {"USD": 1.0, "GBP": 0.79, "EUR": 0.92, "NGN": 1600.5}


@pytest.fixture
def mock_sources(raw_countries, rates):
    """Patch requests.get to serve the sample payloads by URL.

    The returned mock exposes ``.payloads`` so tests can swap a source's
    payload or status before triggering a refresh.
    """
    payloads = {
        COUNTRIES_URL: (raw_countries, 200),
        RATES_URL: ({"result": "success", "base_code": "USD", "rates": rates}, 200),
    }

    def fake_get(url, timeout=None):
        payload, status_code = payloads[url]
        if isinstance(payload, Exception):
            raise payload
        return fake_response(payload, status_code)

    with patch("countries.utils.requests.get", side_effect=fake_get) as mocked:
        mocked.payloads = payloads
        yield mocked
