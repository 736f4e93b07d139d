"""
Celery configuration for the album media service.

Celery runs the work that must not block requests:
- Deleting orphaned blobs from the CDN with retry and backoff
- Purging finished cleanup jobs past their retention

Redis is both the message broker and result backend. Periodic schedules live
in django-celery-beat's database tables (see media/migrations) and tasks are
auto-discovered from installed apps.

Usage:
    from media.tasks import process_cleanup_jobs

    process_cleanup_jobs.delay()

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Celery will look for a tasks.py module in each installed app
app.autodiscover_tasks()
