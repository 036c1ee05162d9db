"""
Celery configuration for the payment sync service.

Celery runs the background side of payment sync:
- Initial sync sessions (paging through every provider entity type)
- Webhook event processing after the HTTP endpoint has stored the delivery
- Periodic retry of failed webhooks and recovery of stuck ones (beat)

This configuration uses Redis as both the message broker and result backend.
Tasks are auto-discovered from all installed Django apps.

Usage:
    from payment_sync.tasks import run_initial_sync

    run_initial_sync.delay(str(session.id))

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

# Celery looks for a tasks.py module in each installed app
app.autodiscover_tasks()
