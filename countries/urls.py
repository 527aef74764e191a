from django.urls import path
from . import views


urlpatterns = [
    # POST /countries/refresh → Fetch and refresh all country data
    path('countries/refresh', views.refresh_countries, name='refresh_countries'),
    # GET /countries/search?name= → Case-insensitive substring search
    path('countries/search', views.search_countries, name='search_countries'),
    # DELETE /countries/delete?name= → Delete every substring match
    path('countries/delete', views.delete_countries, name='delete_countries'),
    # GET /countries/status → Row count and newest refresh timestamp
    path('countries/status', views.get_status, name='get_status'),
    # GET /countries/image → Serve generated summary image
    path('countries/image', views.get_summary_image, name='get_summary_image'),
    # GET /countries → List countries (optional filters)
    path('countries', views.list_countries, name='list_countries'),
    path('countries/', views.list_countries),
]
