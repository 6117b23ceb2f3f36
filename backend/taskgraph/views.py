# backend/taskgraph/views.py
import logging
import re

from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .checker import DependencyValidationError, check_circularity, format_cycle_path
from .models import Task, canonical_id
from .serializers import (
    AddDependencySerializer,
    CheckCircularitySerializer,
    CheckDependenciesSerializer,
    TaskSerializer,
)

logger = logging.getLogger(__name__)

PK_RE = re.compile(r"[0-9]+")


def _as_pk(value):
    """Primary key for a stored dependency id, or None when it cannot be one."""
    value = str(value).strip()
    return int(value) if PK_RE.fullmatch(value) else None


def _run_check(task_id, dependencies, snapshot):
    """Run the checker and turn a validation failure into a 400 response."""
    try:
        result = check_circularity(task_id, dependencies, snapshot)
    except DependencyValidationError as e:
        logger.warning("rejected circularity check for %r: %s", task_id, e)
        return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response(result.as_dict(), status=status.HTTP_200_OK)


class CheckDependenciesAPIView(APIView):
    """
    POST /api/tasks/<task_id>/check-dependencies
    payload: {"dependencies": ["2", "3"]}
    Checks the proposed dependencies against every stored task. task_id may
    belong to a task that is not saved yet.
    """

    def post(self, request, task_id):
        ser = CheckDependenciesSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        deps = [canonical_id(d) for d in ser.validated_data["dependencies"]]
        return _run_check(canonical_id(task_id), deps, Task.objects.snapshot())


class CheckCircularityAPIView(APIView):
    """
    POST /api/tasks/check-dependencies
    payload: {"taskId": "A", "dependencies": ["C"], "tasks": [{"id": "B", "dependencies": ["A"]}, ...]}
    Same check, against a snapshot supplied by the caller instead of the database.
    """

    def post(self, request):
        ser = CheckCircularitySerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        return _run_check(data["taskId"], data["dependencies"], data["tasks"])


class TaskDependenciesAPIView(APIView):
    def get(self, request, task_id):
        task = get_object_or_404(Task, pk=task_id)
        ids = [pk for pk in map(_as_pk, task.dependencies) if pk is not None]
        by_pk = Task.objects.in_bulk(ids)
        # declared order; dangling ids are skipped
        deps = [by_pk[pk] for pk in ids if pk in by_pk]
        return Response(TaskSerializer(deps, many=True).data, status=status.HTTP_200_OK)

    def post(self, request, task_id):
        ser = AddDependencySerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        dep_pk = _as_pk(ser.validated_data["dependent_task_id"])

        with transaction.atomic():
            task = get_object_or_404(Task.objects.select_for_update(), pk=task_id)
            dep = Task.objects.filter(pk=dep_pk).first() if dep_pk is not None else None
            if dep is None:
                raw = ser.validated_data["dependent_task_id"]
                return Response({"error": f"dependency task {raw!r} not found"}, status=status.HTTP_404_NOT_FOUND)
            # stored edges always use the canonical id the snapshot exposes
            dep_id = str(dep.pk)

            current = [canonical_id(d) for d in task.dependencies]
            if dep_id in current:
                return Response(TaskSerializer(task).data, status=status.HTTP_200_OK)

            result = check_circularity(str(task.pk), [dep_id], Task.objects.snapshot())
            if result.has_circular:
                chain = format_cycle_path(result.path)
                logger.info("blocked dependency %s -> %s: %s", task.pk, dep_id, chain)
                return Response(
                    {"error": f"circular dependency: {chain}", "path": result.path},
                    status=status.HTTP_409_CONFLICT,
                )

            task.dependencies = current + [dep_id]
            task.save(update_fields=["dependencies"])
        return Response(TaskSerializer(task).data, status=status.HTTP_201_CREATED)


class TaskDependencyDetailAPIView(APIView):
    def delete(self, request, task_id, dependency_id):
        with transaction.atomic():
            task = get_object_or_404(Task.objects.select_for_update(), pk=task_id)
            dependency_id = canonical_id(dependency_id)
            current = [canonical_id(d) for d in task.dependencies]
            if dependency_id not in current:
                return Response({"error": f"task {task_id} does not depend on {dependency_id}"},
                                status=status.HTTP_404_NOT_FOUND)
            current.remove(dependency_id)
            task.dependencies = current
            task.save(update_fields=["dependencies"])
        return Response(status=status.HTTP_204_NO_CONTENT)
