"""Celery configuration.

The beat schedule lives in settings (``CELERY_BEAT_SCHEDULE``) so the
release time follows ``PENDING_POINT_RELEASE_HOUR``/``_MINUTE``.
"""
import os

from celery import Celery

os.environ.setdefault(
    "DJANGO_SETTINGS_MODULE",
    os.getenv("DJANGO_SETTINGS_MODULE", "config.settings.dev"),
)

app = Celery("xmall")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
