# backend/taskgraph/checker.py
import logging
from collections.abc import Mapping
from typing import NamedTuple

logger = logging.getLogger(__name__)

WHITE, GRAY, BLACK = 0, 1, 2


class DependencyValidationError(ValueError):
    """Raised when a circularity check is called with malformed input."""


class CircularityResult(NamedTuple):
    has_circular: bool
    path: list | None = None

    def as_dict(self):
        # wire shape expected by the dashboard
        return {"hasCircular": self.has_circular, "path": self.path}


# --- Helpers: input normalization ---
def _normalize_id(value, what):
    if value is None or isinstance(value, bool):
        raise DependencyValidationError(f"{what} is required")
    if isinstance(value, (int, str)):
        value = str(value).strip()
        if value:
            return value
        raise DependencyValidationError(f"{what} must not be blank")
    raise DependencyValidationError(f"{what} must be a string or integer, got {type(value).__name__}")


def _normalize_ids(values, what):
    if not isinstance(values, (list, tuple)):
        raise DependencyValidationError(f"{what} must be a list of task ids")
    seen = []
    for idx, v in enumerate(values):
        tid = _normalize_id(v, f"{what}[{idx}]")
        if tid not in seen:
            seen.append(tid)
    return seen


def build_adjacency(all_tasks):
    """
    all_tasks: iterable of task mappings (each has 'id' and an optional 'dependencies' list)
    returns: dict id -> list of dependency ids, in declared order, without duplicates
    """
    if all_tasks is None or isinstance(all_tasks, (str, bytes, Mapping)):
        raise DependencyValidationError("tasks must be a list of task objects")
    graph = {}
    for idx, t in enumerate(all_tasks):
        if not isinstance(t, Mapping):
            raise DependencyValidationError(f"tasks[{idx}] must be an object")
        tid = _normalize_id(t.get("id"), f"tasks[{idx}].id")
        deps = t.get("dependencies") or []
        graph[tid] = _normalize_ids(deps, f"tasks[{idx}].dependencies")
    return graph


def check_circularity(task_id, proposed_dependency_ids, all_tasks):
    """Tell whether adding ``task_id -> d`` for every proposed ``d`` closes a cycle.

    Only the part of the graph reachable from ``task_id`` is walked. Unknown ids
    are leaves. When a cycle is found, ``path`` is the cycle in edge order with
    its first node repeated at the end, e.g. ``["A", "C", "B", "A"]``.
    """
    task_id = _normalize_id(task_id, "taskId")
    proposed = _normalize_ids(proposed_dependency_ids, "dependencies")
    graph = build_adjacency(all_tasks)

    # proposed edges first so the reported cycle follows the caller's order
    existing = graph.get(task_id, [])
    graph[task_id] = proposed + [d for d in existing if d not in proposed]

    path = _find_cycle_from(task_id, graph)
    if path is None:
        return CircularityResult(False, None)
    logger.debug("cycle detected from %s: %s", task_id, format_cycle_path(path))
    return CircularityResult(True, path)


def _find_cycle_from(start, graph):
    color = {start: GRAY}
    stack = [start]
    iters = [iter(graph.get(start, ()))]

    while iters:
        node = next(iters[-1], None)
        if node is None:
            # all edges of the top node explored
            color[stack.pop()] = BLACK
            iters.pop()
            continue
        state = color.get(node, WHITE)
        if state == GRAY:
            idx = stack.index(node)
            return stack[idx:] + [node]
        if state == WHITE:
            color[node] = GRAY
            stack.append(node)
            iters.append(iter(graph.get(node, ())))
    return None


def format_cycle_path(path):
    return " → ".join(path or [])
