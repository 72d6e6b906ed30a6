"""
Django settings for the incident response coordinator.

Values come from environment variables; dotenv files are loaded first by
config.env.load_env (existing process env vars win).
"""

import os
from pathlib import Path

from config.env import env_bool, env_list, load_env

BASE_DIR = Path(__file__).resolve().parent.parent

load_env(BASE_DIR)

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "django-insecure-incident-response-dev-key")

DEBUG = env_bool("DJANGO_DEBUG", False)

ALLOWED_HOSTS = env_list("DJANGO_ALLOWED_HOSTS", ["localhost", "127.0.0.1", "testserver"])

INSTALLED_APPS = [
    "config.apps.IncidentAdminConfig",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "django_object_actions",
    "apps.incidents",
    "apps.oncall",
    "apps.notify",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "config.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("DJANGO_DB_PATH", str(BASE_DIR / "db.sqlite3")),
        # Seconds a writer from another process waits for the lock.
        "OPTIONS": {"timeout": int(os.environ.get("DJANGO_DB_TIMEOUT", "20"))},
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"

# --- Logging ---
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{asctime} {levelname} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "apps": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
    },
}

# --- Email (used by the "django" email sender) ---
EMAIL_BACKEND = os.environ.get(
    "DJANGO_EMAIL_BACKEND", "django.core.mail.backends.smtp.EmailBackend"
)
EMAIL_HOST = os.environ.get("DJANGO_EMAIL_HOST", "localhost")
EMAIL_PORT = int(os.environ.get("DJANGO_EMAIL_PORT", "25"))

# --- Notification channels ---
NOTIFY_SLACK_WEBHOOK_URL = os.environ.get("NOTIFY_SLACK_WEBHOOK_URL", "")
NOTIFY_SLACK_CHANNEL = os.environ.get("NOTIFY_SLACK_CHANNEL", "#incidents")
NOTIFY_DISCORD_WEBHOOK_URL = os.environ.get("NOTIFY_DISCORD_WEBHOOK_URL", "")
NOTIFY_TWILIO_ACCOUNT_SID = os.environ.get("NOTIFY_TWILIO_ACCOUNT_SID", "")
NOTIFY_TWILIO_AUTH_TOKEN = os.environ.get("NOTIFY_TWILIO_AUTH_TOKEN", "")
NOTIFY_TWILIO_FROM_NUMBER = os.environ.get("NOTIFY_TWILIO_FROM_NUMBER", "")
NOTIFY_EMAIL_SENDER = os.environ.get("NOTIFY_EMAIL_SENDER", "django")
NOTIFY_EMAIL_FROM_ADDRESS = os.environ.get("NOTIFY_EMAIL_FROM_ADDRESS", "incidents@localhost")
NOTIFY_SMTP_HOST = os.environ.get("NOTIFY_SMTP_HOST", "")
NOTIFY_SMTP_PORT = int(os.environ.get("NOTIFY_SMTP_PORT", "587"))
NOTIFY_SMTP_USERNAME = os.environ.get("NOTIFY_SMTP_USERNAME", "")
NOTIFY_SMTP_PASSWORD = os.environ.get("NOTIFY_SMTP_PASSWORD", "")
NOTIFY_SMTP_USE_TLS = env_bool("NOTIFY_SMTP_USE_TLS", True)
NOTIFY_WAR_ROOM_BASE_URL = os.environ.get("NOTIFY_WAR_ROOM_BASE_URL", "https://meet.google.com")
NOTIFY_TIMEOUT = float(os.environ.get("NOTIFY_TIMEOUT", "10"))
NOTIFY_MAX_RETRIES = int(os.environ.get("NOTIFY_MAX_RETRIES", "2"))
NOTIFY_BACKOFF_BASE = float(os.environ.get("NOTIFY_BACKOFF_BASE", "0.5"))
NOTIFY_BACKOFF_FACTOR = float(os.environ.get("NOTIFY_BACKOFF_FACTOR", "2.0"))
NOTIFY_DISPATCH_DEADLINE = float(os.environ.get("NOTIFY_DISPATCH_DEADLINE", "20"))

# Channels to skip entirely (e.g. in local development)
NOTIFY_SKIP_ALL = env_bool("NOTIFY_SKIP_ALL", False)
NOTIFY_SKIP = env_list("NOTIFY_SKIP", [])

# Dotted path to a MonitoringBackend class (default: logging backend)
NOTIFY_MONITORING_BACKEND = os.environ.get("NOTIFY_MONITORING_BACKEND", "")

# --- Incident workflow ---
INCIDENT_IMMEDIATE_CHANNELS = env_list("INCIDENT_IMMEDIATE_CHANNELS", ["chat", "sms", "email"])
INCIDENT_DEFERRED_CHANNELS = env_list("INCIDENT_DEFERRED_CHANNELS", ["chat"])
INCIDENT_WAR_ROOM_SEVERITIES = env_list("INCIDENT_WAR_ROOM_SEVERITIES", ["P0"])
INCIDENT_ANNOUNCE_STATUS_CHANGES = env_bool("INCIDENT_ANNOUNCE_STATUS_CHANGES", False)

# --- On-call directory ---
# Team -> profile mapping; None uses the built-in roster (see apps/oncall/directory.py)
ONCALL_ROSTER = None

# --- Celery ---
CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND", "redis://localhost:6379/0")
CELERY_TASK_ALWAYS_EAGER = env_bool("CELERY_TASK_ALWAYS_EAGER", False)
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TIMEZONE = TIME_ZONE
INCIDENT_ESCALATION_SWEEP_SECONDS = float(os.environ.get("INCIDENT_ESCALATION_SWEEP_SECONDS", "60"))
CELERY_BEAT_SCHEDULE = {
    "dispatch-due-escalations": {
        "task": "apps.incidents.tasks.dispatch_due_escalations",
        "schedule": INCIDENT_ESCALATION_SWEEP_SECONDS,
    },
}
