"""Message templating for incident notifications.

Templates are Jinja2 files under apps/notify/templates/. The template spec
accepted by render_template:
- None or empty -> returns None
- string starting with "file:<name>" -> loads apps/notify/templates/<name>
- dict: {"type": "inline"|"file", "template": "..."}
- string (default) -> treated as inline template, unless a template file of
  that name exists

render_template returns the rendered string or raises ValueError on an
invalid template.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import jinja2

TEMPLATES_DIR = Path(__file__).parent / "templates"

logger = logging.getLogger(__name__)

_JINJA_ENV = jinja2.Environment(
    loader=jinja2.FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=False,
    undefined=jinja2.ChainableUndefined,
)


def _template_exists(name: str) -> Optional[str]:
    for candidate in (name, name + ".j2"):
        path = TEMPLATES_DIR / candidate
        if path.exists() and path.is_file():
            return candidate
    return None


def render_template(spec: Any, context: Dict[str, Any]) -> Optional[str]:
    """Render a template spec with the provided context.

    Args:
        spec: template spec (None, string, or dict)
        context: mapping of variables for the template

    Returns:
        Rendered string or None if spec is falsy
    """
    if not spec:
        return None

    template_str: Optional[str] = None
    template_name: Optional[str] = None
    if isinstance(spec, dict):
        if spec.get("type", "inline") == "file":
            template_name = spec.get("template")
        else:
            template_str = spec.get("template")
    elif isinstance(spec, str):
        if spec.startswith("file:"):
            template_name = spec.split(":", 1)[1]
        elif _template_exists(spec):
            template_name = spec
        else:
            template_str = spec
    else:
        raise ValueError("Unsupported template spec")

    try:
        if template_name:
            resolved = _template_exists(template_name)
            if resolved is None:
                raise ValueError(f"Template file not found: {template_name}")
            logger.debug("render_template: loading template file: %s", resolved)
            tmpl = _JINJA_ENV.get_template(resolved)
        elif template_str:
            tmpl = _JINJA_ENV.from_string(template_str)
        else:
            return None
        return tmpl.render(**(context or {}))
    except jinja2.TemplateError as e:
        raise ValueError(f"Jinja2 render error: {e}")


class IncidentMessageRenderer:
    """Builds the per-channel message payloads for incident notifications.

    Each method returns the payload dict expected by the matching driver
    (chat: text, sms: body, email: subject + body).
    """

    def build_context(self, incident: Dict[str, Any], **extra: Any) -> Dict[str, Any]:
        context = {
            "incident_id": incident.get("id", ""),
            "severity": incident.get("severity", ""),
            "service": incident.get("service", ""),
            "description": incident.get("description", ""),
            "reporter": incident.get("reporter", ""),
            "status": incident.get("status", ""),
            "created_at": incident.get("created_at", ""),
        }
        context.update(extra)
        return context

    def chat(self, incident: Dict[str, Any], **extra: Any) -> Dict[str, Any]:
        return {"text": render_template("file:incident_chat.j2", self.build_context(incident, **extra))}

    def sms(self, incident: Dict[str, Any], **extra: Any) -> Dict[str, Any]:
        return {"body": render_template("file:incident_sms.j2", self.build_context(incident, **extra))}

    def email(self, incident: Dict[str, Any], **extra: Any) -> Dict[str, Any]:
        context = self.build_context(incident, **extra)
        return {
            "subject": render_template("file:incident_email_subject.j2", context),
            "body": render_template("file:incident_email_body.j2", context),
        }

    def escalation(self, incident: Dict[str, Any], **extra: Any) -> Dict[str, Any]:
        return {"text": render_template("file:escalation_chat.j2", self.build_context(incident, **extra))}

    def status_update(self, incident: Dict[str, Any], note: str = "") -> Dict[str, Any]:
        return {
            "text": render_template("file:status_update.j2", self.build_context(incident, note=note))
        }

    def for_channel(self, channel: str, incident: Dict[str, Any], **extra: Any) -> Dict[str, Any]:
        """Payload for the given channel name."""
        if channel == "sms":
            return self.sms(incident, **extra)
        if channel == "email":
            return self.email(incident, **extra)
        if channel == "discord":
            return {"kind": "incident_alert", **self.build_context(incident, **extra)}
        return self.chat(incident, **extra)
