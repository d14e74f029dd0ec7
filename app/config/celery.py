"""
Celery application for background and scheduled refund work.

Scheduled jobs (created by refunds/migrations/0002_refund_schedules.py):
    - refunds.tasks.auto_process_expired_decisions  (hourly)
    - refunds.tasks.send_refund_reminders           (every 6 hours)
    - refunds.tasks.process_expired_campaigns       (daily)

Fire-and-forget work:
    - notifications.tasks.send_notification_email

Redis is both broker and result backend. Tasks are auto-discovered from
the tasks.py module of every installed app.

Usage:
    from refunds.tasks import auto_process_expired_decisions

    auto_process_expired_decisions.delay()
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
