"""
URL configuration for the course portal.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin (jobs, payments, enrollments)
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/payments/              - Payment endpoints
        webhooks/paystack/         - Paystack webhook endpoint (POST)
    /api/v1/admin/                 - Queue administration (admin role)
        queues/                    - Queue stats, pause, resume, clean, retry-failed
        jobs/                      - Job ledger, retry, remove

WebSocket routes (ws/events/) are served by config.asgi.

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    path("payments/", include("payments.urls")),
    path("admin/", include("jobs.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Course Portal Admin"
admin.site.site_title = "Course Portal"
admin.site.index_title = "Jobs, payments and enrollments"
