from django.contrib import admin

from .models import Country


@admin.register(Country)
class CountryAdmin(admin.ModelAdmin):
    list_display = ('name', 'region', 'population', 'currency_code',
                    'exchange_rate', 'estimated_value', 'last_refreshed_at')
    search_fields = ('name',)
    list_filter = ('region',)
    readonly_fields = ('last_refreshed_at',)
