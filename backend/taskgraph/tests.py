# backend/taskgraph/tests.py
import copy

from django.test import SimpleTestCase
from rest_framework.test import APITestCase

from .checker import (
    CircularityResult,
    DependencyValidationError,
    build_adjacency,
    check_circularity,
    format_cycle_path,
)
from .models import Task

CHAIN = [
    {"id": "A", "title": "A", "status": "pending", "dependencies": []},
    {"id": "B", "title": "B", "status": "pending", "dependencies": ["A"]},
    {"id": "C", "title": "C", "status": "pending", "dependencies": ["B"]},
]


def _is_cycle(path, edges, start):
    # every hop is a real edge and the walk returns to where it began
    if path[0] != path[-1] or start not in path:
        return False
    return all(b in edges.get(a, []) for a, b in zip(path, path[1:]))


class CheckCircularityTests(SimpleTestCase):
    def test_transitive_cycle_reports_full_path(self):
        res = check_circularity("A", ["C"], CHAIN)
        self.assertTrue(res.has_circular)
        self.assertEqual(res.path, ["A", "C", "B", "A"])

    def test_direct_reverse_edge_is_a_cycle(self):
        res = check_circularity("A", ["B"], CHAIN)
        self.assertEqual(res, CircularityResult(True, ["A", "B", "A"]))

    def test_self_dependency(self):
        res = check_circularity("T1", ["T1"], [{"id": "T1", "dependencies": []}])
        self.assertEqual(res.path, ["T1", "T1"])

    def test_acyclic_addition(self):
        res = check_circularity("C", ["A"], CHAIN)
        self.assertFalse(res.has_circular)
        self.assertIsNone(res.path)

    def test_new_task_not_in_snapshot(self):
        res = check_circularity("NEW", ["A", "C"], CHAIN)
        self.assertEqual(res, CircularityResult(False, None))

    def test_dangling_dependency_is_a_leaf(self):
        tasks = CHAIN + [{"id": "D", "dependencies": ["ghost"]}]
        self.assertFalse(check_circularity("A", ["ghost"], tasks).has_circular)
        self.assertFalse(check_circularity("A", ["D"], tasks).has_circular)

    def test_empty_proposal_on_acyclic_graph(self):
        self.assertFalse(check_circularity("C", [], CHAIN).has_circular)

    def test_existing_edges_of_edited_task_are_kept(self):
        tasks = [
            {"id": "A", "dependencies": ["B"]},
            {"id": "B", "dependencies": []},
            {"id": "C", "dependencies": []},
        ]
        # B -> C is fine on its own, but A -> B is already stored
        self.assertFalse(check_circularity("B", ["C"], tasks).has_circular)
        res = check_circularity("B", ["A"], tasks)
        self.assertEqual(res.path, ["B", "A", "B"])

    def test_first_cycle_in_declared_order_wins(self):
        tasks = [
            {"id": "A", "dependencies": []},
            {"id": "B", "dependencies": ["A"]},
            {"id": "C", "dependencies": ["A"]},
        ]
        self.assertEqual(check_circularity("A", ["C", "B"], tasks).path, ["A", "C", "A"])
        self.assertEqual(check_circularity("A", ["B", "C"], tasks).path, ["A", "B", "A"])

    def test_reported_path_is_a_real_cycle(self):
        tasks = [
            {"id": "1", "dependencies": ["2", "3"]},
            {"id": "2", "dependencies": ["4"]},
            {"id": "3", "dependencies": ["4", "5"]},
            {"id": "4", "dependencies": []},
            {"id": "5", "dependencies": ["6"]},
            {"id": "6", "dependencies": []},
        ]
        res = check_circularity("6", ["1"], tasks)
        self.assertTrue(res.has_circular)
        edges = build_adjacency(tasks)
        edges["6"] = ["1"]
        self.assertTrue(_is_cycle(res.path, edges, "6"))
        self.assertEqual(res.path, ["6", "1", "3", "5", "6"])

    def test_reachable_cycle_elsewhere_is_reported(self):
        tasks = [
            {"id": "X", "dependencies": ["Y"]},
            {"id": "Y", "dependencies": ["X"]},
            {"id": "A", "dependencies": []},
        ]
        res = check_circularity("A", ["X"], tasks)
        self.assertTrue(res.has_circular)
        self.assertEqual(res.path, ["X", "Y", "X"])
        self.assertNotIn("A", res.path)
        # an unreachable cycle does not block the edit
        self.assertFalse(check_circularity("A", ["ghost"], tasks).has_circular)

    def test_diamond_without_cycle(self):
        tasks = [
            {"id": "top", "dependencies": ["left", "right"]},
            {"id": "left", "dependencies": ["bottom"]},
            {"id": "right", "dependencies": ["bottom"]},
            {"id": "bottom", "dependencies": []},
        ]
        self.assertFalse(check_circularity("bottom", ["extra"], tasks).has_circular)
        self.assertFalse(check_circularity("new", ["top", "left"], tasks).has_circular)

    def test_long_chain_does_not_recurse(self):
        n = 5000
        tasks = [{"id": str(i), "dependencies": [str(i - 1)] if i else []} for i in range(n)]
        res = check_circularity("0", [str(n - 1)], tasks)
        self.assertTrue(res.has_circular)
        self.assertEqual(len(res.path), n + 1)
        self.assertEqual(res.path[0], res.path[-1])

    def test_integer_ids_are_compared_as_strings(self):
        tasks = [{"id": 1, "dependencies": []}, {"id": 2, "dependencies": [1]}]
        self.assertEqual(check_circularity(1, [2], tasks).path, ["1", "2", "1"])

    def test_snapshot_is_not_mutated_and_result_is_stable(self):
        before = copy.deepcopy(CHAIN)
        first = check_circularity("A", ["C"], CHAIN)
        second = check_circularity("A", ["C"], CHAIN)
        self.assertEqual(first, second)
        self.assertEqual(CHAIN, before)

    def test_validation_errors(self):
        for task_id, deps, tasks in [
            (None, [], CHAIN),
            ("", [], CHAIN),
            ("A", "C", CHAIN),
            ("A", {"C"}, CHAIN),
            ("A", [None], CHAIN),
            ("A", ["C"], None),
            ("A", ["C"], [{"dependencies": []}]),
            ("A", ["C"], ["A"]),
        ]:
            with self.assertRaises(DependencyValidationError):
                check_circularity(task_id, deps, tasks)

    def test_as_dict_and_formatting(self):
        res = check_circularity("A", ["C"], CHAIN)
        self.assertEqual(res.as_dict(), {"hasCircular": True, "path": ["A", "C", "B", "A"]})
        self.assertEqual(format_cycle_path(res.path), "A → C → B → A")
        self.assertEqual(CircularityResult(False).as_dict(), {"hasCircular": False, "path": None})


class CheckDependenciesAPITests(APITestCase):
    def setUp(self):
        self.a = Task.objects.create(title="A")
        self.b = Task.objects.create(title="B", dependencies=[str(self.a.pk)])
        self.c = Task.objects.create(title="C", dependencies=[str(self.b.pk)])

    def test_check_against_stored_tasks(self):
        resp = self.client.post(f"/api/tasks/{self.a.pk}/check-dependencies",
                                {"dependencies": [str(self.c.pk)]}, format="json")
        self.assertEqual(resp.status_code, 200)
        a, b, c = str(self.a.pk), str(self.b.pk), str(self.c.pk)
        self.assertEqual(resp.json(), {"hasCircular": True, "path": [a, c, b, a]})

    def test_check_for_unsaved_task(self):
        resp = self.client.post("/api/tasks/new/check-dependencies/",
                                {"dependencies": [str(self.c.pk), "999"]}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"hasCircular": False, "path": None})

    def test_check_canonicalizes_stored_ids(self):
        resp = self.client.post(f"/api/tasks/0{self.a.pk}/check-dependencies",
                                {"dependencies": [f"00{self.c.pk}"]}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["hasCircular"])

    def test_check_rejects_malformed_body(self):
        resp = self.client.post(f"/api/tasks/{self.a.pk}/check-dependencies",
                                {"dependencies": "oops"}, format="json")
        self.assertEqual(resp.status_code, 400)
        resp = self.client.post(f"/api/tasks/{self.a.pk}/check-dependencies", {}, format="json")
        self.assertEqual(resp.status_code, 400)

    def test_blank_task_id_is_rejected_and_logged_quoted(self):
        with self.assertLogs("taskgraph.views", level="WARNING") as logs:
            resp = self.client.post("/api/tasks/%20/check-dependencies", {"dependencies": []}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("rejected circularity check for ''", logs.output[0])

    def test_check_with_supplied_snapshot(self):
        payload = {"taskId": "A", "dependencies": ["B"], "tasks": CHAIN}
        resp = self.client.post("/api/tasks/check-dependencies", payload, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"hasCircular": True, "path": ["A", "B", "A"]})

    def test_supplied_snapshot_requires_tasks(self):
        resp = self.client.post("/api/tasks/check-dependencies", {"taskId": "A", "dependencies": []}, format="json")
        self.assertEqual(resp.status_code, 400)


class TaskDependenciesAPITests(APITestCase):
    def setUp(self):
        self.a = Task.objects.create(title="A")
        self.b = Task.objects.create(title="B", dependencies=[str(self.a.pk)])
        self.c = Task.objects.create(title="C")

    def url(self, task, suffix=""):
        return f"/api/tasks/{task.pk}/dependencies{suffix}"

    def test_list_dependencies_skips_dangling(self):
        self.b.dependencies = [str(self.a.pk), "4242"]
        self.b.save()
        resp = self.client.get(self.url(self.b))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([t["id"] for t in resp.json()], [str(self.a.pk)])

    def test_add_dependency(self):
        resp = self.client.post(self.url(self.c), {"dependent_task_id": str(self.b.pk)}, format="json")
        self.assertEqual(resp.status_code, 201)
        self.c.refresh_from_db()
        self.assertEqual(self.c.dependencies, [str(self.b.pk)])

    def test_add_existing_dependency_is_a_noop(self):
        resp = self.client.post(self.url(self.b), {"dependent_task_id": str(self.a.pk)}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.b.refresh_from_db()
        self.assertEqual(self.b.dependencies, [str(self.a.pk)])

    def test_add_dependency_that_closes_a_cycle_is_rejected(self):
        resp = self.client.post(self.url(self.a), {"dependent_task_id": str(self.b.pk)}, format="json")
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["path"], [str(self.a.pk), str(self.b.pk), str(self.a.pk)])
        self.a.refresh_from_db()
        self.assertEqual(self.a.dependencies, [])

    def test_self_dependency_is_rejected(self):
        resp = self.client.post(self.url(self.c), {"dependent_task_id": str(self.c.pk)}, format="json")
        self.assertEqual(resp.status_code, 409)

    def test_unknown_tasks_are_404(self):
        resp = self.client.post(self.url(self.c), {"dependent_task_id": "9999"}, format="json")
        self.assertEqual(resp.status_code, 404)
        resp = self.client.post("/api/tasks/9999/dependencies", {"dependent_task_id": str(self.a.pk)}, format="json")
        self.assertEqual(resp.status_code, 404)

    def test_remove_dependency(self):
        resp = self.client.delete(self.url(self.b, f"/{self.a.pk}"))
        self.assertEqual(resp.status_code, 204)
        self.b.refresh_from_db()
        self.assertEqual(self.b.dependencies, [])
        resp = self.client.delete(self.url(self.b, f"/{self.a.pk}"))
        self.assertEqual(resp.status_code, 404)

    def test_snapshot_shape(self):
        snap = {t["id"]: t["dependencies"] for t in Task.objects.snapshot()}
        self.assertEqual(snap[str(self.b.pk)], [str(self.a.pk)])
        self.assertEqual(snap[str(self.c.pk)], [])

    def test_non_canonical_id_cannot_hide_a_cycle(self):
        resp = self.client.post(self.url(self.a), {"dependent_task_id": f"0{self.b.pk}"}, format="json")
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["path"], [str(self.a.pk), str(self.b.pk), str(self.a.pk)])
        self.a.refresh_from_db()
        self.assertEqual(self.a.dependencies, [])

    def test_added_dependency_is_stored_canonically(self):
        resp = self.client.post(self.url(self.c), {"dependent_task_id": f" 00{self.b.pk} "}, format="json")
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["dependencies"], [str(self.b.pk)])
        self.c.refresh_from_db()
        self.assertEqual(self.c.dependencies, [str(self.b.pk)])

    def test_legacy_padded_ids_still_count_in_the_snapshot(self):
        self.b.dependencies = [f"0{self.a.pk}"]
        self.b.save()
        snap = {t["id"]: t["dependencies"] for t in Task.objects.snapshot()}
        self.assertEqual(snap[str(self.b.pk)], [str(self.a.pk)])
        resp = self.client.post(self.url(self.a), {"dependent_task_id": str(self.b.pk)}, format="json")
        self.assertEqual(resp.status_code, 409)

    def test_non_ascii_digits_are_404(self):
        resp = self.client.post(self.url(self.a), {"dependent_task_id": "²"}, format="json")
        self.assertEqual(resp.status_code, 404)
        self.b.dependencies = ["²", str(self.a.pk)]
        self.b.save()
        resp = self.client.get(self.url(self.b))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([t["id"] for t in resp.json()], [str(self.a.pk)])

    def test_remove_padded_dependency(self):
        self.b.dependencies = [f"0{self.a.pk}"]
        self.b.save()
        resp = self.client.delete(self.url(self.b, f"/{self.a.pk}"))
        self.assertEqual(resp.status_code, 204)
        self.b.refresh_from_db()
        self.assertEqual(self.b.dependencies, [])
