from django.db import models
from django.db.models import Max

from .exceptions import NotFoundError, ValidationError


def _clean_term(query):
    if not isinstance(query, str) or not query.strip():
        raise ValidationError({"name": "is required"})
    return query.strip()


class CountryQuerySet(models.QuerySet):
    """Store operations over the country table."""

    # Columns a caller may rank by.
    ORDERABLE_FIELDS = (
        "name", "capital", "region", "population", "currency_code",
        "exchange_rate", "estimated_value", "last_refreshed_at",
    )

    def upsert_by_name(self, record):
        """
        Update the row whose name matches ``record["name"]`` exactly, or
        insert a new one. Returns ``(country, created)``.

        The lookup is an exact match while search is case-insensitive, so
        "france" and "France" from upstream end up as two rows on a
        case-sensitive collation such as SQLite's default.
        """
        fields = {key: value for key, value in record.items() if key != "id"}
        existing = self.filter(name=fields["name"]).order_by("id").first()
        if existing is None:
            return self.create(**fields), True

        for key, value in fields.items():
            setattr(existing, key, value)
        existing.save()
        return existing, False

    def matching_name(self, query):
        return self.filter(name__icontains=_clean_term(query))

    def find_by_name_contains(self, query):
        matches = list(self.matching_name(query))
        if not matches:
            raise NotFoundError()
        return matches

    def delete_by_name_contains(self, query):
        matches = self.matching_name(query)
        if not matches.exists():
            raise NotFoundError()
        _, per_model = matches.delete()
        return per_model.get(self.model._meta.label, 0)

    def find_all(self):
        return self.order_by("id")

    def top_by_field(self, field, n):
        if field not in self.ORDERABLE_FIELDS:
            raise ValueError(f"{field!r} is not an orderable country field")
        return list(self.order_by(f"-{field}", "id")[:n])

    def last_refreshed_at(self):
        return self.aggregate(latest=Max("last_refreshed_at"))["latest"]


class Country(models.Model):
    # id: auto-generated, never rewritten by a refresh
    # name: upsert key, deliberately not unique (see upsert_by_name)
    name = models.CharField(max_length=200, db_index=True)
    capital = models.CharField(max_length=200, null=True, blank=True)
    region = models.CharField(max_length=100, default="Unknown")
    population = models.BigIntegerField(default=0)
    # currency_code: first currency of the source record, null when it has none
    currency_code = models.CharField(max_length=10, null=True, blank=True)
    # exchange_rate: units of currency_code per base currency; null when unknown
    exchange_rate = models.DecimalField(max_digits=30, decimal_places=12, null=True, blank=True)
    # estimated_value: population * random(1000-2000) / exchange_rate, 0 when not computable
    estimated_value = models.DecimalField(max_digits=30, decimal_places=2, default=0)
    flag_url = models.URLField(max_length=500, null=True, blank=True)
    last_refreshed_at = models.DateTimeField(auto_now=True)

    objects = CountryQuerySet.as_manager()

    class Meta:
        verbose_name_plural = "countries"

    def __str__(self):
        return self.name
