"""API routes for the evaluation ledger.

Exposes the OpenAPI schema, interactive documentation and the versioned
REST endpoints under /api/v1/.
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

from .views import CourseViewSet

router = DefaultRouter()
router.register(r"api/v1/courses", CourseViewSet, basename="courses")

urlpatterns = [
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("", include(router.urls)),
]
