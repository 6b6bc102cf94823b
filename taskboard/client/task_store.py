"""Client-side task cache.

Holds the task list as last seen from the server, the dashboard statistics,
the current filter/sort criteria and per-operation loading flags. Updates and
deletes are applied optimistically and rolled back to an exact snapshot when
the server call fails. Overlapping mutations of the same task are not
coordinated: whichever response arrives last wins.
"""

import logging
from typing import Any

from pydantic import BaseModel, ValidationError
from pydantic_core import to_jsonable_python

from taskboard.client.api import TasksAPI
from taskboard.client.http import ApiError
from taskboard.client.storage import PreferencesStore
from taskboard.client.store import Store
from taskboard.models.tasks import CreateTaskRequest, Task, TaskStats

logger = logging.getLogger(__name__)

StoreError = (ApiError, ValidationError)


class TaskState(BaseModel):
    tasks: list[Task] = []
    task_stats: TaskStats = TaskStats()
    current_task: Task | None = None
    is_loading: bool = False
    error: str | None = None

    is_creating: bool = False
    is_updating: bool = False
    is_deleting: bool = False

    search_term: str = ""
    status_filter: str = ""
    sort_by: str = "created_at"
    sort_order: str = "desc"


def _message(error: Exception, fallback: str) -> str:
    if isinstance(error, ApiError):
        return error.message or fallback
    return fallback


class TaskStore(Store[TaskState]):
    def __init__(self, api: TasksAPI, preferences: PreferencesStore | None = None):
        self.api = api
        self.preferences = preferences
        saved = preferences.load() if preferences is not None else {}
        super().__init__(TaskState(**saved))

    def _persist_preferences(self) -> None:
        if self.preferences is None:
            return
        state = self.state
        self.preferences.save(
            search_term=state.search_term,
            status_filter=state.status_filter,
            sort_by=state.sort_by,
            sort_order=state.sort_order,
        )

    # --- Reads ---

    def fetch_tasks(self) -> None:
        """Replace the list with the server's view under the current criteria.

        On failure the list is emptied rather than left stale.
        """
        self._set(is_loading=True, error=None)
        state = self.state
        try:
            tasks = self.api.list_tasks(
                search_term=state.search_term,
                status=state.status_filter,
                sort_by=state.sort_by,
                sort_order=state.sort_order,
            )
        except StoreError as e:
            logger.warning("Failed to fetch tasks: %s", e)
            self._set(tasks=[], is_loading=False, error=_message(e, "Failed to fetch tasks"))
            return
        self._set(tasks=tasks, is_loading=False)

    def fetch_task_stats(self) -> None:
        """Refresh the statistics. A failure keeps the previous numbers."""
        try:
            stats = self.api.get_stats()
        except StoreError as e:
            logger.warning("Failed to fetch task stats: %s", e)
            self._set(error=_message(e, "Failed to fetch task statistics"))
            return
        self._set(task_stats=stats)

    def fetch_task(self, task_id: str) -> None:
        self._set(is_loading=True, error=None, current_task=None)
        try:
            task = self.api.get_task(task_id)
        except StoreError as e:
            logger.warning("Failed to fetch task %s: %s", task_id, e)
            self._set(current_task=None, is_loading=False, error=_message(e, "Failed to fetch task details"))
            return
        self._set(current_task=task, is_loading=False)

    # --- Mutations ---

    def create_task(self, data: CreateTaskRequest | dict[str, Any]) -> Task:
        """Create a task and put it at the head of the list. Re-raises on failure."""
        payload = data.model_dump(mode="json") if isinstance(data, BaseModel) else to_jsonable_python(data)
        self._set(is_creating=True, error=None)
        try:
            task = self.api.create_task(payload)
        except StoreError as e:
            logger.warning("Failed to create task: %s", e)
            self._set(is_creating=False, error=_message(e, "Failed to create task"))
            raise
        self._set(tasks=[task, *self.state.tasks], is_creating=False)
        self.fetch_task_stats()
        return task

    def update_task(self, task_id: str, updates: dict[str, Any]) -> Task:
        """Apply ``updates`` locally at once, then confirm with the server.

        ``None`` values mean "leave unchanged" and are not sent. A failed call
        restores the list exactly as it was and re-raises.
        """
        updates = {field: value for field, value in updates.items() if value is not None}
        previous = self.state.tasks
        self._set(is_updating=True, error=None)
        try:
            self._set(tasks=[
                Task.model_validate({**task.model_dump(), **updates}) if task.id == task_id else task
                for task in previous
            ])
            updated = self.api.update_task(task_id, to_jsonable_python(updates))
        except StoreError as e:
            logger.warning("Failed to update task %s: %s", task_id, e)
            self._set(tasks=previous, is_updating=False, error=_message(e, "Failed to update task"))
            raise
        current = self.state.current_task
        self._set(
            tasks=[updated if task.id == task_id else task for task in self.state.tasks],
            current_task=updated if current is not None and current.id == task_id else current,
            is_updating=False,
        )
        self.fetch_task_stats()
        return updated

    def delete_task(self, task_id: str) -> None:
        """Drop the task locally at once, then delete it on the server.

        A failed call puts the list back in its original order and re-raises.
        """
        self._set(is_deleting=True, error=None)
        previous = self.state.tasks
        self._set(tasks=[task for task in previous if task.id != task_id])
        try:
            self.api.delete_task(task_id)
        except StoreError as e:
            logger.warning("Failed to delete task %s: %s", task_id, e)
            self._set(tasks=previous, is_deleting=False, error=_message(e, "Failed to delete task"))
            raise
        current = self.state.current_task
        self._set(
            current_task=None if current is not None and current.id == task_id else current,
            is_deleting=False,
        )
        self.fetch_task_stats()

    # --- Criteria ---

    def set_search_term(self, term: str) -> None:
        """Update the search term only. Callers decide when to fetch."""
        self._set(search_term=term)
        self._persist_preferences()

    def update_criteria(
        self,
        *,
        search_term: str | None = None,
        status_filter: str | None = None,
        sort_by: str | None = None,
        sort_order: str | None = None,
    ) -> None:
        """Change any of the criteria given (``None`` keeps the current value), then fetch once."""
        changes = {
            "search_term": search_term,
            "status_filter": status_filter,
            "sort_by": sort_by,
            "sort_order": sort_order,
        }
        self._set(**{field: value for field, value in changes.items() if value is not None})
        self._persist_preferences()
        self.fetch_tasks()

    def set_status_filter(self, status: str) -> None:
        self.update_criteria(status_filter=status)

    def set_sorting(self, sort_by: str, sort_order: str) -> None:
        self.update_criteria(sort_by=sort_by, sort_order=sort_order)

    def clear_error(self) -> None:
        self._set(error=None)

    # --- Selectors ---

    def filtered_tasks(self) -> list[Task]:
        """The cached list narrowed by the current search term and status, without a request."""
        state = self.state
        term = state.search_term.lower()
        return [
            task
            for task in state.tasks
            if (not term or term in task.title.lower() or term in task.description.lower())
            and (not state.status_filter or task.status == state.status_filter)
        ]

    def get_task_by_id(self, task_id: str) -> Task | None:
        return next((task for task in self.state.tasks if task.id == task_id), None)
