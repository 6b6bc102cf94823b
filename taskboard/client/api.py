"""Endpoint wrappers over ``ApiClient``, returning typed models."""

from typing import Any

from taskboard.client.http import ApiClient, decode_json
from taskboard.models.tasks import Task, TaskStats
from taskboard.models.users import AuthResponse, User, VerifyResponse


class TasksAPI:
    def __init__(self, client: ApiClient):
        self.client = client

    def list_tasks(
        self,
        *,
        search_term: str = "",
        status: str = "",
        sort_by: str = "",
        sort_order: str = "",
    ) -> list[Task]:
        """List tasks. Empty criteria are left out of the query string."""
        params: dict[str, str] = {}
        if search_term:
            params["searchTerm"] = search_term
        if status:
            params["status"] = status
        if sort_by:
            params["sortBy"] = sort_by
        if sort_order:
            params["sortOrder"] = sort_order
        data = decode_json(self.client.get("/api/tasks", params=params))
        if not isinstance(data, list):
            return []
        return [Task.model_validate(item) for item in data]

    def get_task(self, task_id: str) -> Task:
        return Task.model_validate(decode_json(self.client.get(f"/api/tasks/{task_id}")))

    def create_task(self, data: dict[str, Any]) -> Task:
        return Task.model_validate(decode_json(self.client.post("/api/tasks", json=data)))

    def update_task(self, task_id: str, updates: dict[str, Any]) -> Task:
        return Task.model_validate(decode_json(self.client.put(f"/api/tasks/{task_id}", json=updates)))

    def delete_task(self, task_id: str) -> None:
        self.client.delete(f"/api/tasks/{task_id}")

    def get_stats(self) -> TaskStats:
        return TaskStats.model_validate(decode_json(self.client.get("/api/tasks/stats")))


class AuthAPI:
    def __init__(self, client: ApiClient):
        self.client = client

    def _session(self, path: str, payload: dict) -> AuthResponse:
        result = AuthResponse.model_validate(decode_json(self.client.post(path, json=payload, auth=False)))
        self.client.credentials.save(result.token, result.refresh_token)
        return result

    def login_with_google(self, credential: str) -> AuthResponse:
        return self._session("/api/auth/google", {"credential": credential})

    def login(self, email: str, password: str) -> AuthResponse:
        return self._session("/api/auth/login", {"email": email, "password": password})

    def register(self, name: str, email: str, password: str) -> AuthResponse:
        return self._session("/api/users", {"name": name, "email": email, "password": password})

    def logout(self, refresh_token: str | None = None) -> None:
        self.client.post("/api/auth/logout", json={"refresh_token": refresh_token}, auth=False)

    def verify(self, token: str) -> User:
        data = decode_json(self.client.post("/api/auth/verify", json={"token": token}, auth=False))
        return VerifyResponse.model_validate(data).user


class UsersAPI:
    def __init__(self, client: ApiClient):
        self.client = client

    def get_current_user(self) -> User:
        return User.model_validate(decode_json(self.client.get("/api/users/me")))

    def update_profile(self, **updates: Any) -> User:
        return User.model_validate(decode_json(self.client.patch("/api/users/me", json=updates)))
