"""
URL configuration for the notify app.
"""

from django.urls import path

from apps.notify.views import NotifyOperationView

app_name = "notify"

urlpatterns = [
    path("<str:operation>/", NotifyOperationView.as_view(), name="operation"),
]
