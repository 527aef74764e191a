import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

import requests
from django.conf import settings
from django.db import DatabaseError

from . import utils
from .exceptions import ExternalFetchError, PersistenceError
from .models import Country
from .summary import SummaryGenerator, SummaryResult
from .transform import build_country_record

logger = logging.getLogger(__name__)

# requests failures plus JSON decoding / shape errors from the fetchers
FETCH_ERRORS = (requests.RequestException, ValueError)


@dataclass(frozen=True)
class RefreshConfig:
    countries_url: str = (
        "https://restcountries.com/v2/all?fields=name,capital,region,population,flag,currencies"
    )
    exchange_rate_url: str = "https://open.er-api.com/v6/latest/USD"
    base_currency: str = "USD"
    timeout: float = 10
    cache_dir: str = str(Path(__file__).resolve().parent.parent / "cache")
    summary_filename: str = "summary.png"
    top_n: int = 5

    @classmethod
    def from_settings(cls):
        return cls(
            countries_url=settings.COUNTRIES_API_URL,
            exchange_rate_url=settings.EXCHANGE_RATE_API_URL,
            base_currency=settings.EXCHANGE_RATE_BASE_CURRENCY,
            timeout=settings.EXTERNAL_API_TIMEOUT,
            cache_dir=settings.SUMMARY_CACHE_DIR,
            summary_filename=settings.SUMMARY_IMAGE_NAME,
            top_n=settings.SUMMARY_TOP_N,
        )


@dataclass
class RefreshResult:
    refreshed_at: datetime
    inserted: int = 0
    updated: int = 0
    skipped: list = field(default_factory=list)
    summary: Optional[SummaryResult] = None

    @property
    def processed(self):
        return self.inserted + self.updated


class RefreshPipeline:
    """
    Pull every country and the rate table, upsert one row per country,
    then regenerate the summary image.

    Countries are written one at a time with no surrounding transaction:
    a database error part-way through leaves the earlier rows committed.
    """

    def __init__(self, config=None, summary_generator=None):
        self.config = config or RefreshConfig.from_settings()
        self.summary_generator = summary_generator or SummaryGenerator(self.config)

    def fetch_countries(self):
        logger.info("Fetching countries from %s", self.config.countries_url)
        try:
            countries = utils.fetch_countries(self.config.countries_url, self.config.timeout)
        except FETCH_ERRORS as exc:
            logger.error("Countries API error: %s", exc)
            raise ExternalFetchError("countries", cause=exc) from exc
        logger.info("Fetched %d countries", len(countries))
        return countries

    def fetch_rates(self):
        logger.info("Fetching exchange rates from %s", self.config.exchange_rate_url)
        try:
            rates = utils.fetch_exchange_rates(self.config.exchange_rate_url, self.config.timeout)
        except FETCH_ERRORS as exc:
            logger.error("Exchange Rate API error: %s", exc)
            raise ExternalFetchError("exchange-rate", cause=exc) from exc
        logger.info("Fetched %d exchange rates", len(rates))
        return rates

    def refresh(self):
        countries = self.fetch_countries()
        rates = self.fetch_rates()

        result = RefreshResult(refreshed_at=utils.get_now())
        for raw in countries:
            if not isinstance(raw, dict) or not raw.get("name"):
                logger.warning("Skipping country entry without a name: %r", raw)
                result.skipped.append(raw)
                continue

            record = build_country_record(raw, rates)
            try:
                country, created = Country.objects.upsert_by_name(record)
            except (DatabaseError, OverflowError, ValueError) as exc:
                logger.error("Failed to save %s: %s", record["name"], exc)
                raise PersistenceError(exc) from exc

            if created:
                result.inserted += 1
            else:
                result.updated += 1
            logger.debug("%s %s: population=%s currency=%s rate=%s estimated=%s",
                         "Inserted" if created else "Updated", country.name,
                         country.population, country.currency_code,
                         country.exchange_rate, country.estimated_value)

        logger.info("Refresh stored %d countries (%d new, %d updated, %d skipped)",
                    result.processed, result.inserted, result.updated, len(result.skipped))

        result.summary = self.summary_generator.generate()
        if not result.summary.ok:
            logger.warning("Refresh succeeded but the summary image was not updated: %s",
                           result.summary.error)
        return result
