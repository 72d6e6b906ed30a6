"""
Notification delivery app.

Fans a set of notification requests out to chat, SMS, email, Discord and
war-room channels through pluggable drivers, with bounded retries and a
dispatch deadline.
"""

default_app_config = "apps.notify.apps.NotifyConfig"
