from rest_framework import serializers
from .models import Country


class CountrySerializer(serializers.ModelSerializer):
    # Rates and estimates go out as JSON numbers, not strings.
    exchange_rate = serializers.DecimalField(max_digits=30, decimal_places=12,
                                             coerce_to_string=False, allow_null=True,
                                             read_only=True)
    estimated_value = serializers.DecimalField(max_digits=30, decimal_places=2,
                                               coerce_to_string=False, read_only=True)

    class Meta:
        model = Country
        fields = [
            'id', 'name', 'capital', 'region', 'population',
            'currency_code', 'exchange_rate', 'estimated_value',
            'flag_url', 'last_refreshed_at'
        ]
        read_only_fields = fields


class ListQuerySerializer(serializers.Serializer):
    """Optional filters and ordering for GET /countries."""

    SORT_FIELDS = {
        "name": "name",
        "population": "population",
        "exchange_rate": "exchange_rate",
        "estimated_value": "estimated_value",
        "gdp": "estimated_value",
    }

    region = serializers.CharField(required=False)
    currency = serializers.CharField(required=False)
    sort = serializers.CharField(required=False)

    def validate(self, data):
        unknown = set(self.initial_data) - set(self.fields)
        if unknown:
            raise serializers.ValidationError(
                {key: "is not a valid filter" for key in sorted(unknown)}
            )
        return data

    def validate_sort(self, value):
        field, _, direction = value.rpartition("_")
        if direction not in ("asc", "desc") or field not in self.SORT_FIELDS:
            raise serializers.ValidationError(
                "invalid format (use <field>_asc or <field>_desc)"
            )
        column = self.SORT_FIELDS[field]
        return column if direction == "asc" else f"-{column}"
