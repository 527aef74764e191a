"""
Error variants raised by the countries app.

Each variant carries only what the HTTP boundary needs to build its
response; ``views.error_response`` is the single place that maps them.
"""


class CountryServiceError(Exception):
    """Base class for every error the countries app raises on purpose."""


class ExternalFetchError(CountryServiceError):
    """One of the upstream APIs was unreachable, timed out or sent garbage."""

    SOURCE_LABELS = {
        "countries": "Countries API",
        "exchange-rate": "Exchange Rate API",
    }

    def __init__(self, source, cause=None):
        self.source = source
        self.cause = cause
        super().__init__(self.details)

    @property
    def details(self):
        label = self.SOURCE_LABELS.get(self.source, self.source)
        return f"Could not fetch data from {label}"


class ValidationError(CountryServiceError):
    """A search or delete term was missing, empty or not a string."""

    def __init__(self, details=None):
        self.details = details or {"name": "is required"}
        super().__init__("Validation failed")


class NotFoundError(CountryServiceError):
    """A name pattern matched no stored country."""

    def __init__(self, message="Country not found"):
        self.message = message
        super().__init__(message)


class PersistenceError(CountryServiceError):
    """Writing a country row failed part-way through a refresh."""

    def __init__(self, cause):
        self.cause = cause
        super().__init__(f"Failed to save countries to database: {cause}")
