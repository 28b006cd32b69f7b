"""URL routing for the evaluation ledger.

Admin (read-only views of the ledger stores) plus the REST API, its
schema and documentation.
"""
from django.contrib import admin
from django.urls import include, path


urlpatterns = [
    path("admin/", admin.site.urls),
    path("", include("api.urls")),
]
