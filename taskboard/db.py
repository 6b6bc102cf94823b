"""Document database access.

Services talk to collections through a small subset of the pymongo
``Collection`` API, so a MongoDB database (``MONGODB_URI`` set) and the JSON
file database used for local runs and tests are interchangeable:

    insert_one, find_one, find(...).sort(...), update_one, delete_one,
    delete_many, count_documents

Query documents support equality, ``$or`` and the operators
``$eq $ne $lt $lte $gt $gte $regex`` (with ``$options: "i"``).
Updates support ``$set`` and ``$unset``. The JSON file is written as MongoDB
extended JSON, so datetimes survive a reload.
"""

import copy
import logging
import re
import threading
from functools import lru_cache
from pathlib import Path

from bson import json_util
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.results import DeleteResult, InsertOneResult, UpdateResult

from taskboard.config import get_settings

logger = logging.getLogger(__name__)

JSON_OPTIONS = json_util.RELAXED_JSON_OPTIONS.with_options(tz_aware=True)


def _compare(op: str, value, operand) -> bool:
    if value is None or operand is None:
        return False
    try:
        if op == "$lt":
            return value < operand
        if op == "$lte":
            return value <= operand
        if op == "$gt":
            return value > operand
        return value >= operand
    except TypeError:
        return False


def _match_operators(value, conditions: dict) -> bool:
    for op, operand in conditions.items():
        if op == "$options":
            continue
        if op == "$eq":
            if value != operand:
                return False
        elif op == "$ne":
            if value == operand:
                return False
        elif op in ("$lt", "$lte", "$gt", "$gte"):
            if not _compare(op, value, operand):
                return False
        elif op == "$regex":
            flags = re.IGNORECASE if "i" in conditions.get("$options", "") else 0
            if not isinstance(value, str) or not re.search(operand, value, flags):
                return False
        else:
            raise ValueError(f"Unsupported query operator: {op}")
    return True


def matches(document: dict, query: dict) -> bool:
    """Return True if ``document`` satisfies the Mongo-style ``query``."""
    for key, condition in query.items():
        if key == "$or":
            if not any(matches(document, sub) for sub in condition):
                return False
            continue
        value = document.get(key)
        if isinstance(condition, dict) and any(k.startswith("$") for k in condition):
            if not _match_operators(value, condition):
                return False
        elif value != condition:
            return False
    return True


class JsonCursor:
    """Result of ``JsonCollection.find``; supports ``sort`` and iteration."""

    def __init__(self, documents: list[dict]):
        self._documents = documents

    def sort(self, key_or_list, direction: int | None = None) -> "JsonCursor":
        if isinstance(key_or_list, str):
            keys = [(key_or_list, direction if direction is not None else ASCENDING)]
        else:
            keys = list(key_or_list)
        # Stable sort, least significant key first. Missing values sort lowest.
        for key, order in reversed(keys):
            self._documents.sort(
                key=lambda doc: (doc.get(key) is not None, doc.get(key) if doc.get(key) is not None else 0),
                reverse=order == DESCENDING,
            )
        return self

    def __iter__(self):
        return iter(self._documents)


class JsonCollection:
    def __init__(self, database: "JsonDatabase", name: str):
        self.database = database
        self.name = name

    def _documents(self) -> list[dict]:
        return self.database._data.setdefault(self.name, [])

    def insert_one(self, document: dict) -> InsertOneResult:
        with self.database._lock:
            if "_id" not in document:
                raise ValueError("Documents must carry an _id")
            if any(doc["_id"] == document["_id"] for doc in self._documents()):
                raise ValueError(f"Duplicate _id {document['_id']!r} in {self.name}")
            self._documents().append(copy.deepcopy(document))
            self.database._flush()
        return InsertOneResult(document["_id"], True)

    def find_one(self, query: dict | None = None) -> dict | None:
        with self.database._lock:
            for doc in self._documents():
                if matches(doc, query or {}):
                    return copy.deepcopy(doc)
        return None

    def find(self, query: dict | None = None) -> JsonCursor:
        with self.database._lock:
            found = [copy.deepcopy(doc) for doc in self._documents() if matches(doc, query or {})]
        return JsonCursor(found)

    def update_one(self, query: dict, update: dict) -> UpdateResult:
        unknown = set(update) - {"$set", "$unset"}
        if unknown:
            raise ValueError(f"Unsupported update operator(s): {sorted(unknown)}")
        with self.database._lock:
            for doc in self._documents():
                if matches(doc, query):
                    doc.update(copy.deepcopy(update.get("$set", {})))
                    for field in update.get("$unset", {}):
                        doc.pop(field, None)
                    self.database._flush()
                    return UpdateResult({"n": 1, "nModified": 1}, True)
        return UpdateResult({"n": 0, "nModified": 0}, True)

    def delete_one(self, query: dict) -> DeleteResult:
        with self.database._lock:
            documents = self._documents()
            for index, doc in enumerate(documents):
                if matches(doc, query):
                    del documents[index]
                    self.database._flush()
                    return DeleteResult({"n": 1}, True)
        return DeleteResult({"n": 0}, True)

    def delete_many(self, query: dict) -> DeleteResult:
        with self.database._lock:
            documents = self._documents()
            kept = [doc for doc in documents if not matches(doc, query)]
            removed = len(documents) - len(kept)
            self.database._data[self.name] = kept
            if removed:
                self.database._flush()
        return DeleteResult({"n": removed}, True)

    def count_documents(self, query: dict) -> int:
        with self.database._lock:
            return sum(1 for doc in self._documents() if matches(doc, query))

    def create_index(self, keys, **kwargs) -> str:
        # Uniqueness is enforced by the services for the JSON backend.
        return keys if isinstance(keys, str) else "_".join(k for k, _ in keys)


class JsonDatabase:
    """Collections persisted together in one JSON file."""

    def __init__(self, path: Path):
        self.path = path
        self.name = path.stem
        self._lock = threading.RLock()
        self._data: dict[str, list[dict]] = self._load()

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        return json_util.loads(self.path.read_text() or "{}", json_options=JSON_OPTIONS)

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json_util.dumps(self._data, json_options=JSON_OPTIONS, indent=2))

    def __getitem__(self, name: str) -> JsonCollection:
        return JsonCollection(self, name)


def _ensure_indexes(database) -> None:
    database["users"].create_index("email", unique=True)
    database["tasks"].create_index([("owner_id", ASCENDING), ("created_at", DESCENDING)])
    # MongoDB drops refresh-token sessions once expires_at has passed.
    database["sessions"].create_index("expires_at", expireAfterSeconds=0)


@lru_cache
def get_database():
    """Return the configured database: MongoDB when MONGODB_URI is set, else the JSON file."""
    settings = get_settings()
    if settings.mongodb_uri:
        logger.info("Using MongoDB database %r", settings.mongodb_database)
        database = MongoClient(settings.mongodb_uri)[settings.mongodb_database]
    else:
        logger.info("Using JSON database at %s", settings.data_file)
        database = JsonDatabase(settings.data_file)
    _ensure_indexes(database)
    return database


def database_status() -> tuple[str, bool, str]:
    """Return (backend, ready, message) for the status endpoint."""
    database = get_database()
    if isinstance(database, JsonDatabase):
        return "json", True, f"JSON file database at {database.path}"
    try:
        database.client.admin.command("ping")
    except Exception as e:
        return "mongodb", False, f"MongoDB unreachable: {e}"
    return "mongodb", True, f"MongoDB database '{database.name}'"
