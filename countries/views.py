import logging

from django.http import FileResponse
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from .exceptions import (
    CountryServiceError,
    ExternalFetchError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from .models import Country
from .serializers import CountrySerializer, ListQuerySerializer
from .services import RefreshConfig, RefreshPipeline
from .summary import SummaryGenerator

logger = logging.getLogger(__name__)


def error_response(exc):
    """Map a CountryServiceError variant to its JSON error response."""
    if isinstance(exc, ExternalFetchError):
        return Response(
            {"error": "External data source unavailable", "details": exc.details},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    if isinstance(exc, ValidationError):
        return Response(
            {"error": "Validation failed", "details": exc.details},
            status=status.HTTP_400_BAD_REQUEST,
        )
    if isinstance(exc, NotFoundError):
        return Response({"error": exc.message}, status=status.HTTP_404_NOT_FOUND)
    if isinstance(exc, PersistenceError):
        return Response(
            {"error": "Internal server error", "details": str(exc)},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    raise TypeError(f"Unhandled error variant: {type(exc).__name__}")


@api_view(['POST'])
def refresh_countries(request):
    """
    POST /countries/refresh
    Fetch countries and exchange rates, upsert every country, then
    regenerate the summary image.
    """
    logger.info("Refresh requested")
    try:
        result = RefreshPipeline(RefreshConfig.from_settings()).refresh()
    except CountryServiceError as exc:
        return error_response(exc)

    return Response(
        {
            "success": True,
            "message": "Countries data refreshed successfully",
            "timestamp": result.refreshed_at.isoformat(),
        },
        status=status.HTTP_200_OK,
    )


@api_view(['GET'])
def list_countries(request):
    """
    GET /countries
    Optional filters:
      - region, currency (exact, case-insensitive)
    Sorting:
      - ?sort=<field>_asc or <field>_desc  (name, population, exchange_rate,
        estimated_value; gdp is accepted as an alias of estimated_value)
    Default: ordered by id ascending.
    """
    query = ListQuerySerializer(data=request.query_params)
    if not query.is_valid():
        return error_response(ValidationError(query.errors))

    qs = Country.objects.find_all()
    params = query.validated_data
    if "region" in params:
        qs = qs.filter(region__iexact=params["region"])
    if "currency" in params:
        qs = qs.filter(currency_code__iexact=params["currency"])
    if "sort" in params:
        qs = qs.order_by(params["sort"], "id")

    return Response(CountrySerializer(qs, many=True).data)


@api_view(['GET'])
def search_countries(request):
    """GET /countries/search?name=<term> -> every country whose name contains term."""
    try:
        matches = Country.objects.find_by_name_contains(request.query_params.get("name"))
    except CountryServiceError as exc:
        return error_response(exc)
    return Response(CountrySerializer(matches, many=True).data)


@api_view(['DELETE'])
def delete_countries(request):
    """DELETE /countries/delete?name=<term> -> remove every match, report the count."""
    try:
        deleted = Country.objects.delete_by_name_contains(request.query_params.get("name"))
    except CountryServiceError as exc:
        return error_response(exc)

    logger.info("Deleted %d countries matching %r", deleted, request.query_params.get("name"))
    return Response({
        "deleted_count": deleted,
        "message": f"{deleted} countries deleted successfully.",
    })


@api_view(['GET'])
def get_status(request):
    """
    GET /countries/status -> { total_countries, last_refreshed_at }
    last_refreshed_at is the newest last_refreshed_at across records (or null).
    """
    last = Country.objects.last_refreshed_at()
    return Response({
        "total_countries": Country.objects.count(),
        "last_refreshed_at": last.isoformat() if last else None,
    })


@api_view(['GET'])
def get_summary_image(request):
    """
    GET /countries/image
    Serve the cached summary PNG, or a JSON 404 if no refresh produced one yet.
    """
    path = SummaryGenerator(RefreshConfig.from_settings()).image_path()
    try:
        image = open(path, 'rb')
    except FileNotFoundError:
        return Response({"error": "Summary image not found"}, status=status.HTTP_404_NOT_FOUND)
    response = FileResponse(image, content_type='image/png')
    response['Cache-Control'] = 'public, max-age=300'
    return response
