"""Custom admin site for the incident response console."""

import json

from django.contrib.admin import AdminSite
from django.utils.html import format_html


class IncidentAdminSite(AdminSite):
    site_header = "Incident Response"
    site_title = "Incident Response"
    index_title = "Incidents"


def prettify_json(value):
    """Render a JSON-compatible value as an indented <pre> block."""
    if value in (None, "", {}, []):
        return "-"
    return format_html(
        '<pre style="white-space: pre-wrap; margin: 0;">{}</pre>',
        json.dumps(value, indent=2, sort_keys=True, default=str),
    )
