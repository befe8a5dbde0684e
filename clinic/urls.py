"""
Top-level routes for the clinic EMR backend.

API endpoints, ``/healthz`` and ``/metrics`` live in ``emr.routers``.
The OpenAPI schema is served at ``/swagger/`` and ``/redoc/``; the
Django admin sits at ``/admin/`` for back-office data fixes.
"""
from django.contrib import admin
from django.urls import include, path
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework import permissions

api_info = openapi.Info(
    title="Clinic EMR API",
    default_version='v1',
    description="Patient registration, consents, scheduling, billing, queues and clinical notes.",
    contact=openapi.Contact(email="it@clinic.local"),
)

schema_view = get_schema_view(api_info, public=True, permission_classes=(permissions.AllowAny,))

docs_patterns = [
    path('swagger/', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
    path('redoc/', schema_view.with_ui('redoc', cache_timeout=0), name='schema-redoc'),
]

urlpatterns = [
    path('', include('emr.routers')),
    path('admin/', admin.site.urls),
    *docs_patterns,
]
