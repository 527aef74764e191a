"""Tests for the refresh pipeline."""
import os
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import requests
from django.db import DatabaseError

from countries.exceptions import ExternalFetchError, PersistenceError
from countries.models import Country
from countries.services import RefreshConfig, RefreshPipeline
from countries.summary import SummaryResult

from .conftest import COUNTRIES_URL, RATES_URL


class TestConfig:

    def test_defaults(self, settings):
        config = RefreshConfig()
        assert config.countries_url.startswith("https://restcountries.com/v2/all")
        assert config.exchange_rate_url == "https://open.er-api.com/v6/latest/USD"
        assert config.timeout == 10
        assert config.top_n == 5
        assert config.cache_dir == str(settings.BASE_DIR / "cache")

    def test_from_settings(self, settings):
        settings.EXTERNAL_API_TIMEOUT = 3
        config = RefreshConfig.from_settings()
        assert config.countries_url == COUNTRIES_URL
        assert config.exchange_rate_url == RATES_URL
        assert config.timeout == 3


@pytest.mark.django_db
class TestRefresh:

    def test_stores_every_country(self, config, mock_sources):
        result = RefreshPipeline(config).refresh()

        assert result.inserted == 4
        assert result.updated == 0
        assert Country.objects.count() == 4

        uk = Country.objects.get(name="United Kingdom")
        assert uk.currency_code == "GBP"
        assert uk.exchange_rate == Decimal("0.79")
        assert uk.estimated_value > 0

        polar = Country.objects.get(name="Antarctica")
        assert polar.currency_code is None
        assert polar.exchange_rate is None
        assert polar.estimated_value == 0

    def test_fetches_with_timeout(self, config, mock_sources):
        RefreshPipeline(config).refresh()
        mock_sources.assert_any_call(COUNTRIES_URL, timeout=10)
        mock_sources.assert_any_call(RATES_URL, timeout=10)

    def test_second_refresh_updates_rows(self, config, mock_sources):
        RefreshPipeline(config).refresh()
        before = {c.name: (c.id, c.last_refreshed_at) for c in Country.objects.all()}

        result = RefreshPipeline(config).refresh()

        assert result.inserted == 0
        assert result.updated == 4
        assert Country.objects.count() == 4
        for country in Country.objects.all():
            old_id, old_ts = before[country.name]
            assert country.id == old_id
            assert country.last_refreshed_at > old_ts

    def test_wakanda_without_currency(self, config, mock_sources):
        mock_sources.payloads[COUNTRIES_URL] = (
            [{"name": "Wakanda", "population": 1000000, "currencies": []}], 200)
        mock_sources.payloads[RATES_URL] = ({"rates": {"USD": 1.0}}, 200)

        RefreshPipeline(config).refresh()

        wakanda = Country.objects.get(name="Wakanda")
        assert wakanda.currency_code is None
        assert wakanda.exchange_rate is None
        assert wakanda.estimated_value == 0

    def test_testland_estimate_range(self, config, mock_sources):
        mock_sources.payloads[COUNTRIES_URL] = (
            [{"name": "Testland", "population": 100, "currencies": [{"code": "USD"}]}], 200)
        mock_sources.payloads[RATES_URL] = ({"rates": {"USD": 2.0}}, 200)

        RefreshPipeline(config).refresh()

        testland = Country.objects.get(name="Testland")
        assert Decimal("50000") <= testland.estimated_value <= Decimal("100000")

    def test_skips_nameless_entries(self, config, mock_sources, raw_countries):
        mock_sources.payloads[COUNTRIES_URL] = (raw_countries + [{"population": 5}], 200)
        result = RefreshPipeline(config).refresh()
        assert len(result.skipped) == 1
        assert Country.objects.count() == 4


@pytest.mark.django_db
class TestRefreshFailures:

    def test_countries_unreachable(self, config, mock_sources):
        mock_sources.payloads[COUNTRIES_URL] = (requests.ConnectionError("down"), 200)

        with pytest.raises(ExternalFetchError) as excinfo:
            RefreshPipeline(config).refresh()

        assert excinfo.value.source == "countries"
        # the rate source is never consulted
        assert mock_sources.call_count == 1
        assert Country.objects.count() == 0

    def test_countries_timeout(self, config, mock_sources):
        mock_sources.payloads[COUNTRIES_URL] = (requests.Timeout("slow"), 200)
        with pytest.raises(ExternalFetchError) as excinfo:
            RefreshPipeline(config).refresh()
        assert excinfo.value.source == "countries"

    def test_countries_bad_payload(self, config, mock_sources):
        mock_sources.payloads[COUNTRIES_URL] = ({"message": "Not Found"}, 200)
        with pytest.raises(ExternalFetchError) as excinfo:
            RefreshPipeline(config).refresh()
        assert excinfo.value.source == "countries"

    def test_rates_http_error(self, config, mock_sources):
        mock_sources.payloads[RATES_URL] = ({}, 502)

        with pytest.raises(ExternalFetchError) as excinfo:
            RefreshPipeline(config).refresh()

        assert excinfo.value.source == "exchange-rate"
        assert excinfo.value.details == "Could not fetch data from Exchange Rate API"
        assert Country.objects.count() == 0

    def test_oversized_population_is_stored_as_zero(self, config, mock_sources):
        mock_sources.payloads[COUNTRIES_URL] = (
            [{"name": "Big", "population": 10 ** 20, "currencies": []}], 200)

        RefreshPipeline(config).refresh()

        assert Country.objects.get(name="Big").population == 0

    def test_overflow_while_writing_is_wrapped(self, config, mock_sources):
        with patch.object(Country.objects, "upsert_by_name",
                          side_effect=OverflowError("Python int too large to convert to SQLite INTEGER")):
            with pytest.raises(PersistenceError) as excinfo:
                RefreshPipeline(config).refresh()
        assert isinstance(excinfo.value.cause, OverflowError)

    def test_write_failure_keeps_earlier_rows(self, config, mock_sources):
        original = Country.objects.upsert_by_name
        calls = []

        def flaky_upsert(record):
            calls.append(record["name"])
            if len(calls) == 3:
                raise DatabaseError("disk full")
            return original(record)

        with patch.object(Country.objects, "upsert_by_name", side_effect=flaky_upsert):
            with pytest.raises(PersistenceError) as excinfo:
                RefreshPipeline(config).refresh()

        assert isinstance(excinfo.value.cause, DatabaseError)
        assert set(Country.objects.values_list("name", flat=True)) == {"United Kingdom", "France"}

    def test_summary_failure_is_not_fatal(self, config, mock_sources):
        summary = MagicMock()
        summary.generate.return_value = SummaryResult(ok=False, error=OSError("read-only"))

        result = RefreshPipeline(config, summary_generator=summary).refresh()

        summary.generate.assert_called_once_with()
        assert result.summary.ok is False
        assert Country.objects.count() == 4

    def test_summary_image_written(self, config, mock_sources):
        result = RefreshPipeline(config).refresh()
        assert result.summary.ok is True
        assert os.path.exists(os.path.join(config.cache_dir, "summary.png"))
