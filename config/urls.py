"""URL configuration for the incident response coordinator."""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("incidents/", include("apps.incidents.urls")),
    path("notify/", include("apps.notify.urls")),
    path("oncall/", include("apps.oncall.urls")),
]
