import re

from django.db import models


def canonical_id(value):
    """Stored ids are primary keys; "02" and 2 both name task "2"."""
    value = str(value).strip()
    return str(int(value)) if re.fullmatch(r"[0-9]+", value) else value


class TaskQuerySet(models.QuerySet):
    def snapshot(self):
        """Every task as {'id', 'dependencies'}, the shape the cycle checker reads."""
        return [
            {"id": str(pk), "dependencies": [canonical_id(d) for d in (deps or [])]}
            for pk, deps in self.values_list("pk", "dependencies")
        ]


class Task(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending"
        IN_PROGRESS = "in-progress"
        COMPLETED = "completed"

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    due_date = models.DateField(blank=True, null=True)
    assignee = models.CharField(max_length=255, blank=True, default="")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    dependencies = models.JSONField(default=list, blank=True)  # list of task ids (strings)

    objects = TaskQuerySet.as_manager()

    def __str__(self):
        return self.title
