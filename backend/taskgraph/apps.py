from django.apps import AppConfig


class TaskgraphConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "taskgraph"
