from rest_framework import serializers

from .models import Task


class SnapshotTaskSerializer(serializers.Serializer):
    id = serializers.CharField()
    dependencies = serializers.ListField(child=serializers.CharField(), required=False, default=list)


class CheckDependenciesSerializer(serializers.Serializer):
    dependencies = serializers.ListField(child=serializers.CharField(), allow_empty=True)


class CheckCircularitySerializer(CheckDependenciesSerializer):
    taskId = serializers.CharField()
    tasks = SnapshotTaskSerializer(many=True)


class AddDependencySerializer(serializers.Serializer):
    dependent_task_id = serializers.CharField()


class TaskSerializer(serializers.ModelSerializer):
    id = serializers.CharField(read_only=True)

    class Meta:
        model = Task
        fields = ["id", "title", "description", "due_date", "assignee", "status", "dependencies"]
