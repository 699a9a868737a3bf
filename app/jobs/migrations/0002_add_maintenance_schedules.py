"""
Add celery-beat schedules for job ledger maintenance.

- Prune finished jobs hourly (retention: completed 24h, failed 7d)
- Recover stalled jobs every 5 minutes
"""

from django.db import migrations


SCHEDULES = [
    {
        "name": "Prune Finished Jobs",
        "task": "jobs.tasks.prune_finished_jobs",
        "every": 1,
        "period": "hours",
        "description": "Deletes completed and failed ledger rows past retention.",
    },
    {
        "name": "Recover Stalled Jobs",
        "task": "jobs.tasks.recover_stalled_jobs",
        "every": 5,
        "period": "minutes",
        "description": (
            "Reschedules active jobs whose worker died and republishes "
            "waiting jobs whose broker message was lost."
        ),
    },
]


def create_periodic_tasks(apps, schema_editor):
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
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(
        name__in=[entry["name"] for entry in SCHEDULES],
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("jobs", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
