from datetime import date
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from taskboard.client.http import ApiError, NETWORK_ERROR
from taskboard.client.storage import PreferencesStore
from taskboard.client.task_store import TaskStore
from taskboard.models.tasks import TaskStats
from conftest import make_task

NEW_TASK_INPUT = {
    "title": "A",
    "status": "pending",
    "priority": "low",
    "deadline": "2025-01-01",
    "assigned_to": "bob",
}


@pytest.fixture
def api():
    api = MagicMock()
    api.get_stats.return_value = TaskStats(total=1, pending=1)
    return api


@pytest.fixture
def store(api):
    return TaskStore(api)


def _record_states(store):
    states = []
    store.subscribe(states.append)
    return states


class TestFetchTasks:
    def test_replaces_list_with_current_criteria(self, store, api):
        api.list_tasks.return_value = [make_task("t1")]
        store.set_search_term("report")
        store.fetch_tasks()
        api.list_tasks.assert_called_once_with(
            search_term="report", status="", sort_by="created_at", sort_order="desc",
        )
        assert [t.id for t in store.state.tasks] == ["t1"]
        assert store.state.is_loading is False
        assert store.state.error is None

    def test_loading_flag_during_request(self, store, api):
        seen = []
        api.list_tasks.side_effect = lambda **kwargs: seen.append(store.state.is_loading) or []
        store.fetch_tasks()
        assert seen == [True]
        assert store.state.is_loading is False

    def test_failure_empties_list(self, store, api):
        api.list_tasks.return_value = [make_task("t1")]
        store.fetch_tasks()
        api.list_tasks.side_effect = ApiError("Server down", 500)
        store.fetch_tasks()
        assert store.state.tasks == []
        assert store.state.error == "Server down"
        assert store.state.is_loading is False


class TestFetchTaskStats:
    def test_sets_stats(self, store, api):
        store.fetch_task_stats()
        assert store.state.task_stats.total == 1

    def test_failure_keeps_previous_stats(self, store, api):
        store.fetch_task_stats()
        api.get_stats.side_effect = ApiError("nope", 500)
        store.fetch_task_stats()
        assert store.state.task_stats.total == 1
        assert store.state.error == "nope"


class TestFetchTask:
    def test_sets_current_task(self, store, api):
        api.get_task.return_value = make_task("t1")
        store.fetch_task("t1")
        assert store.state.current_task.id == "t1"

    def test_not_found_clears_slot(self, store, api):
        api.get_task.return_value = make_task("t1")
        store.fetch_task("t1")
        api.get_task.side_effect = ApiError("Task not found", 404)
        store.fetch_task("t2")
        assert store.state.current_task is None
        assert store.state.error == "Task not found"
        assert store.state.is_loading is False


class TestCreateTask:
    def test_scenario_create_into_empty_store(self, store, api):
        created = make_task("new", title="A", deadline=date(2025, 1, 1))
        api.create_task.return_value = created
        states = _record_states(store)

        store.create_task(NEW_TASK_INPUT)

        assert store.state.tasks == [created]
        assert store.state.tasks[0].title == "A"
        creating = [s.is_creating for s in states]
        assert creating[0] is True
        assert creating[-1] is False
        api.create_task.assert_called_once_with(NEW_TASK_INPUT)

    def test_prepends_and_refreshes_stats_once(self, store, api):
        api.list_tasks.return_value = [make_task("old")]
        store.fetch_tasks()
        api.create_task.return_value = make_task("new")
        store.create_task(NEW_TASK_INPUT)
        assert [t.id for t in store.state.tasks] == ["new", "old"]
        api.get_stats.assert_called_once_with()

    def test_serialises_dates(self, store, api):
        api.create_task.return_value = make_task("new")
        store.create_task({**NEW_TASK_INPUT, "deadline": date(2025, 1, 1)})
        assert api.create_task.call_args.args[0]["deadline"] == "2025-01-01"

    def test_failure_leaves_list_and_reraises(self, store, api):
        api.list_tasks.return_value = [make_task("old")]
        store.fetch_tasks()
        api.create_task.side_effect = ApiError("title: Title is required", 422)
        with pytest.raises(ApiError):
            store.create_task(NEW_TASK_INPUT)
        assert [t.id for t in store.state.tasks] == ["old"]
        assert store.state.error == "title: Title is required"
        assert store.state.is_creating is False
        api.get_stats.assert_not_called()


class TestUpdateTask:
    @pytest.fixture(autouse=True)
    def seeded(self, store, api):
        api.list_tasks.return_value = [make_task("t1"), make_task("t2"), make_task("t3")]
        store.fetch_tasks()

    def test_applies_optimistically_before_remote_call(self, store, api):
        seen = []

        def remote(task_id, updates):
            seen.append(store.get_task_by_id(task_id).status)
            return make_task(task_id, status="completed", title="Server title")

        api.update_task.side_effect = remote
        updated = store.update_task("t2", {"status": "completed"})
        assert seen == ["completed"]
        assert updated.title == "Server title"
        assert store.get_task_by_id("t2").title == "Server title"
        assert [t.id for t in store.state.tasks] == ["t1", "t2", "t3"]
        assert store.state.is_updating is False
        api.get_stats.assert_called_once_with()

    def test_failure_restores_exact_list(self, store, api):
        before = store.state.tasks
        api.update_task.side_effect = ApiError(NETWORK_ERROR)
        with pytest.raises(ApiError):
            store.update_task("t2", {"status": "completed", "title": "Changed"})
        assert store.state.tasks == before
        assert store.state.error == NETWORK_ERROR
        assert store.state.is_updating is False

    def test_updates_current_task(self, store, api):
        api.get_task.return_value = make_task("t2")
        store.fetch_task("t2")
        api.update_task.return_value = make_task("t2", priority="high")
        store.update_task("t2", {"priority": "high"})
        assert store.state.current_task.priority == "high"

    def test_sends_json_ready_updates(self, store, api):
        api.update_task.return_value = make_task("t1")
        store.update_task("t1", {"deadline": date(2025, 5, 1)})
        api.update_task.assert_called_once_with("t1", {"deadline": "2025-05-01"})

    def test_none_values_are_left_unchanged(self, store, api):
        api.update_task.return_value = make_task("t1", status="completed")
        store.update_task("t1", {"title": None, "status": "completed"})
        api.update_task.assert_called_once_with("t1", {"status": "completed"})
        assert store.state.error is None

    def test_invalid_value_sets_error_and_restores(self, store, api):
        before = store.state.tasks
        with pytest.raises(ValidationError):
            store.update_task("t1", {"status": "archived"})
        api.update_task.assert_not_called()
        assert store.state.tasks == before
        assert store.state.error == "Failed to update task"
        assert store.state.is_updating is False


class TestDeleteTask:
    def test_scenario_failed_delete_reverts(self, store, api):
        task_x = make_task("x")
        api.list_tasks.return_value = [task_x]
        store.fetch_tasks()
        api.delete_task.side_effect = ApiError(NETWORK_ERROR)
        with pytest.raises(ApiError):
            store.delete_task("x")
        assert store.state.tasks == [task_x]
        assert store.state.error is not None

    def test_failure_restores_original_order(self, store, api):
        api.list_tasks.return_value = [make_task("a"), make_task("b"), make_task("c")]
        store.fetch_tasks()
        api.delete_task.side_effect = ApiError("boom", 500)
        with pytest.raises(ApiError):
            store.delete_task("b")
        assert [t.id for t in store.state.tasks] == ["a", "b", "c"]

    def test_removes_optimistically_and_clears_current(self, store, api):
        api.list_tasks.return_value = [make_task("a"), make_task("b")]
        store.fetch_tasks()
        api.get_task.return_value = make_task("b")
        store.fetch_task("b")
        seen = []
        api.delete_task.side_effect = lambda task_id: seen.append([t.id for t in store.state.tasks])
        store.delete_task("b")
        assert seen == [["a"]]
        assert [t.id for t in store.state.tasks] == ["a"]
        assert store.state.current_task is None
        assert store.state.is_deleting is False
        api.get_stats.assert_called_once_with()


class TestCriteria:
    def test_search_term_does_not_fetch(self, store, api):
        store.set_search_term("abc")
        assert store.state.search_term == "abc"
        api.list_tasks.assert_not_called()

    def test_status_filter_fetches(self, store, api):
        api.list_tasks.return_value = [make_task("done", status="completed")]
        store.set_status_filter("completed")
        assert api.list_tasks.call_args.kwargs["status"] == "completed"
        assert all(t.status == "completed" for t in store.state.tasks)

        api.list_tasks.return_value = [make_task("a"), make_task("done", status="completed")]
        store.set_status_filter("")
        assert api.list_tasks.call_args.kwargs["status"] == ""
        assert len(store.state.tasks) == 2

    def test_sorting_fetches(self, store, api):
        api.list_tasks.return_value = []
        store.set_sorting("deadline", "asc")
        assert api.list_tasks.call_args.kwargs["sort_by"] == "deadline"
        assert api.list_tasks.call_args.kwargs["sort_order"] == "asc"

    def test_update_criteria_fetches_once(self, store, api):
        api.list_tasks.return_value = []
        store.set_search_term("old")
        store.update_criteria(status_filter="pending", sort_by="deadline", sort_order="asc")
        api.list_tasks.assert_called_once_with(
            search_term="old", status="pending", sort_by="deadline", sort_order="asc",
        )

    def test_preferences_persist_across_stores(self, api, tmp_path):
        preferences = PreferencesStore(tmp_path / "preferences.json")
        api.list_tasks.return_value = []
        first = TaskStore(api, preferences)
        first.set_search_term("report")
        first.set_sorting("deadline", "asc")
        first.set_status_filter("pending")

        second = TaskStore(api, preferences)
        assert second.state.search_term == "report"
        assert second.state.sort_by == "deadline"
        assert second.state.sort_order == "asc"
        assert second.state.status_filter == "pending"
        assert second.state.tasks == []

    def test_clear_error(self, store, api):
        api.list_tasks.side_effect = ApiError("x", 500)
        store.fetch_tasks()
        store.clear_error()
        assert store.state.error is None


class TestSelectors:
    def test_filtered_tasks(self, store, api):
        api.list_tasks.return_value = [
            make_task("a", title="Write REPORT"),
            make_task("b", title="Other", description="see report"),
            make_task("c", title="Report done", status="completed"),
            make_task("d", title="Unrelated"),
        ]
        store.fetch_tasks()
        store.set_search_term("report")
        assert [t.id for t in store.filtered_tasks()] == ["a", "b", "c"]
        store._set(status_filter="completed")
        assert [t.id for t in store.filtered_tasks()] == ["c"]

    def test_get_task_by_id(self, store, api):
        api.list_tasks.return_value = [make_task("a")]
        store.fetch_tasks()
        assert store.get_task_by_id("a").id == "a"
        assert store.get_task_by_id("zzz") is None

    def test_unsubscribe(self, store):
        states = []
        unsubscribe = store.subscribe(states.append)
        store.set_search_term("a")
        unsubscribe()
        store.set_search_term("b")
        assert len(states) == 1
