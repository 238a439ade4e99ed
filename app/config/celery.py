"""
Celery configuration for the Django application.

Celery runs the asynchronous side of the payments app:
- Processing stored gateway webhook events
- Periodic re-queueing of webhook events that failed or were never queued

Redis is both the message broker and the result backend. Tasks are
auto-discovered from the installed Django apps; the periodic schedule is
CELERY_BEAT_SCHEDULE in settings.

Usage:
    celery -A config worker -l info
    celery -A config beat -l info

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
