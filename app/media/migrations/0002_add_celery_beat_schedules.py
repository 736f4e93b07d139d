"""
Add Celery Beat schedules for blob cleanup.

This migration creates periodic task schedules for:
- Processing due cleanup jobs (every 15 minutes)
- Purging finished cleanup jobs past retention (daily)
"""

from django.db import migrations


def create_periodic_tasks(apps, schema_editor):
    """Create periodic tasks for cleanup job processing."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    CrontabSchedule = apps.get_model("django_celery_beat", "CrontabSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    # Every 15 minutes
    schedule_15min, _ = IntervalSchedule.objects.get_or_create(
        every=15,
        period="minutes",
    )

    # Daily at 2 AM UTC
    crontab_daily_2am, _ = CrontabSchedule.objects.get_or_create(
        minute="0",
        hour="2",
        day_of_week="*",
        day_of_month="*",
        month_of_year="*",
    )

    PeriodicTask.objects.get_or_create(
        name="Media: Process Cleanup Jobs",
        defaults={
            "task": "media.tasks.process_cleanup_jobs",
            "interval": schedule_15min,
            "enabled": True,
            "description": (
                "Deletes orphaned blobs whose cleanup job is due. Failed "
                "deletions are retried with backoff up to the retry limit."
            ),
        },
    )

    PeriodicTask.objects.get_or_create(
        name="Media: Purge Finished Cleanup Jobs",
        defaults={
            "task": "media.tasks.purge_finished_cleanup_jobs",
            "crontab": crontab_daily_2am,
            "enabled": True,
            "description": (
                "Deletes completed and failed cleanup jobs older than "
                "CLEANUP_JOB_RETENTION_DAYS."
            ),
        },
    )


def remove_periodic_tasks(apps, schema_editor):
    """Remove periodic tasks created by this migration."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    task_names = [
        "Media: Process Cleanup Jobs",
        "Media: Purge Finished Cleanup Jobs",
    ]

    PeriodicTask.objects.filter(name__in=task_names).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("media", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
