import logging
import re
import uuid
from datetime import date, datetime, timezone

from pymongo import ASCENDING, DESCENDING

from taskboard.db import get_database
from taskboard.exceptions import InvalidRequestError, NotFoundError
from taskboard.models.tasks import CreateTaskRequest, Task, TaskStats, UpdateTaskRequest

logger = logging.getLogger(__name__)

# Accepted sortBy values, including the camelCase spellings browser clients send.
SORT_FIELDS = {
    "created_at": "created_at",
    "createdAt": "created_at",
    "updated_at": "updated_at",
    "updatedAt": "updated_at",
    "deadline": "deadline",
    "title": "title",
    "priority": "priority",
    "status": "status",
}


def _tasks():
    return get_database()["tasks"]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_task(doc: dict) -> Task:
    return Task(
        id=doc["_id"],
        title=doc["title"],
        description=doc.get("description", ""),
        deadline=doc["deadline"],
        assigned_to=doc.get("assigned_to", ""),
        status=doc.get("status", "pending"),
        priority=doc.get("priority", "medium"),
        created_at=doc["created_at"],
        updated_at=doc["updated_at"],
    )


def build_query(owner_id: str, search_term: str = "", status: str = "") -> dict:
    query: dict = {"owner_id": owner_id}
    if status:
        query["status"] = status
    if search_term:
        pattern = {"$regex": re.escape(search_term), "$options": "i"}
        query["$or"] = [{"title": pattern}, {"description": pattern}]
    return query


def list_tasks(
    owner_id: str,
    search_term: str = "",
    status: str = "",
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> list[Task]:
    """List the owner's tasks matching a search substring and status, sorted server-side."""
    field = SORT_FIELDS.get(sort_by or "created_at")
    if field is None:
        raise InvalidRequestError(f"Cannot sort by '{sort_by}'. Use one of: {', '.join(sorted(set(SORT_FIELDS.values())))}")
    if sort_order not in ("asc", "desc"):
        raise InvalidRequestError("sortOrder must be 'asc' or 'desc'")
    direction = ASCENDING if sort_order == "asc" else DESCENDING
    cursor = _tasks().find(build_query(owner_id, search_term, status)).sort(field, direction)
    return [_parse_task(doc) for doc in cursor]


def get_task(owner_id: str, task_id: str) -> Task:
    doc = _tasks().find_one({"_id": task_id, "owner_id": owner_id})
    if not doc:
        raise NotFoundError("Task not found")
    return _parse_task(doc)


def create_task(owner_id: str, request: CreateTaskRequest) -> Task:
    now = _now()
    doc = {
        "_id": uuid.uuid4().hex,
        "owner_id": owner_id,
        **request.model_dump(mode="json"),
        "created_at": now,
        "updated_at": now,
    }
    _tasks().insert_one(doc)
    logger.info("Created task %s for user %s", doc["_id"], owner_id)
    return _parse_task(doc)


def update_task(owner_id: str, task_id: str, request: UpdateTaskRequest) -> Task:
    """Apply the fields that were sent. Identifier and timestamps are never client-writable."""
    changes = request.model_dump(mode="json", exclude_unset=True)
    # Explicit nulls for required fields mean "leave unchanged".
    changes = {key: value for key, value in changes.items() if value is not None}
    changes["updated_at"] = _now()
    result = _tasks().update_one({"_id": task_id, "owner_id": owner_id}, {"$set": changes})
    if result.matched_count == 0:
        raise NotFoundError("Task not found")
    return get_task(owner_id, task_id)


def delete_task(owner_id: str, task_id: str) -> None:
    result = _tasks().delete_one({"_id": task_id, "owner_id": owner_id})
    if result.deleted_count == 0:
        raise NotFoundError("Task not found")
    logger.info("Deleted task %s for user %s", task_id, owner_id)


def get_stats(owner_id: str, today: date | None = None) -> TaskStats:
    """Count the owner's tasks by status, plus open tasks whose deadline has passed."""
    today = today or date.today()
    tasks = _tasks()
    return TaskStats(
        total=tasks.count_documents({"owner_id": owner_id}),
        pending=tasks.count_documents({"owner_id": owner_id, "status": "pending"}),
        in_progress=tasks.count_documents({"owner_id": owner_id, "status": "in-progress"}),
        completed=tasks.count_documents({"owner_id": owner_id, "status": "completed"}),
        overdue=tasks.count_documents({
            "owner_id": owner_id,
            "status": {"$ne": "completed"},
            "deadline": {"$lt": today.isoformat()},
        }),
    )
