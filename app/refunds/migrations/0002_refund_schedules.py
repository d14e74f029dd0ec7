"""
Add celery-beat schedules for the refund workflow.

- Auto-process expired refund decisions: every hour
- Send refund decision reminders: every 6 hours
- Initiate refunds for expired campaigns: every day
"""

from django.db import migrations

SCHEDULES = [
    {
        "name": "Auto-process Expired Refund Decisions",
        "task": "refunds.tasks.auto_process_expired_decisions",
        "every": 1,
        "period": "hours",
        "description": (
            "Resolves pending donor decisions past their deadline as refunds "
            "and settles them."
        ),
    },
    {
        "name": "Send Refund Decision Reminders",
        "task": "refunds.tasks.send_refund_reminders",
        "every": 6,
        "period": "hours",
        "description": "Reminds donors with pending decisions as the deadline approaches.",
    },
    {
        "name": "Process Expired Campaign Refunds",
        "task": "refunds.tasks.process_expired_campaigns",
        "every": 1,
        "period": "days",
        "description": (
            "Opens campaign-level refunds for underfunded campaigns past their "
            "grace period and for cancelled campaigns."
        ),
    },
]


def create_periodic_tasks(apps, schema_editor):
    """Create the periodic tasks for the refund workflow."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for entry in SCHEDULES:
        schedule, _ = IntervalSchedule.objects.get_or_create(
            every=entry["every"],
            period=entry["period"],
        )
        PeriodicTask.objects.get_or_create(
            name=entry["name"],
            defaults={
                "task": entry["task"],
                "interval": schedule,
                "enabled": True,
                "description": entry["description"],
            },
        )


def remove_periodic_tasks(apps, schema_editor):
    """Remove the periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(name__in=[entry["name"] for entry in SCHEDULES]).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("refunds", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
