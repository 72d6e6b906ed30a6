"""
URL configuration for the oncall app.
"""

from django.urls import path

from apps.oncall import views

app_name = "oncall"

urlpatterns = [
    path("<str:team>/", views.OncallEngineerView.as_view(), name="engineer"),
    path("<str:team>/channels/", views.TeamChannelsView.as_view(), name="channels"),
    path(
        "<str:team>/escalation/<str:severity>/",
        views.EscalationChainView.as_view(),
        name="escalation",
    ),
]
