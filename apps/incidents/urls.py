"""
URL configuration for the incidents app.
"""

from django.urls import path

from apps.incidents import views

app_name = "incidents"

urlpatterns = [
    path("", views.IncidentCollectionView.as_view(), name="create"),
    path("active/", views.ActiveIncidentsView.as_view(), name="active"),
    path("<str:incident_id>/", views.IncidentDetailView.as_view(), name="detail"),
    path("<str:incident_id>/actions/", views.IncidentActionView.as_view(), name="actions"),
    path("<str:incident_id>/status/", views.IncidentStatusView.as_view(), name="status"),
    path("<str:incident_id>/timeline/", views.IncidentTimelineView.as_view(), name="timeline"),
    path(
        "<str:incident_id>/escalation/",
        views.IncidentEscalationView.as_view(),
        name="escalation",
    ),
]
