from fastapi import APIRouter, Depends, Query

from taskboard.auth import get_current_user
from taskboard.models.tasks import CreateTaskRequest, SortOrder, Task, TaskStats, UpdateTaskRequest
from taskboard.models.users import User
from taskboard.services import tasks as tasks_service

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


@router.get("")
def list_tasks(
    search_term: str = Query("", alias="searchTerm"),
    status: str = "",
    sort_by: str = Query("created_at", alias="sortBy"),
    sort_order: SortOrder = Query("desc", alias="sortOrder"),
    user: User = Depends(get_current_user),
) -> list[Task]:
    return tasks_service.list_tasks(user.id, search_term, status, sort_by, sort_order)


# Declared before /{task_id} so "stats" is not taken for an id.
@router.get("/stats")
def task_stats(user: User = Depends(get_current_user)) -> TaskStats:
    return tasks_service.get_stats(user.id)


@router.get("/{task_id}")
def get_task(task_id: str, user: User = Depends(get_current_user)) -> Task:
    return tasks_service.get_task(user.id, task_id)


@router.post("", status_code=201)
def create_task(request: CreateTaskRequest, user: User = Depends(get_current_user)) -> Task:
    return tasks_service.create_task(user.id, request)


@router.put("/{task_id}")
def replace_task(task_id: str, request: UpdateTaskRequest, user: User = Depends(get_current_user)) -> Task:
    return tasks_service.update_task(user.id, task_id, request)


@router.patch("/{task_id}")
def update_task(task_id: str, request: UpdateTaskRequest, user: User = Depends(get_current_user)) -> Task:
    return tasks_service.update_task(user.id, task_id, request)


@router.delete("/{task_id}", status_code=204)
def delete_task(task_id: str, user: User = Depends(get_current_user)):
    tasks_service.delete_task(user.id, task_id)
