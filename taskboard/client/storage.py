"""Client-side persistence: session credentials and list preferences.

Both live in the client state directory as small JSON files written through
the same ``JsonFileStore``. Tokens get their own file (mode 0600) so clearing
a session never touches preferences and preferences never leak a token.
"""

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class JsonFileStore:
    """Reads/writes a flat JSON object on disk."""

    def __init__(self, path: Path, private: bool = False):
        self.path = path
        self.private = private

    def read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text() or "{}")
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable state file %s", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2))
        if self.private:
            os.chmod(self.path, 0o600)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()


class CredentialStore:
    """Holds the bearer token and optional refresh token between runs."""

    def __init__(self, path: Path):
        self._file = JsonFileStore(path, private=True)

    @property
    def token(self) -> str | None:
        return self._file.read().get("token")

    @property
    def refresh_token(self) -> str | None:
        return self._file.read().get("refresh_token")

    def save(self, token: str, refresh_token: str | None = None) -> None:
        data = {"token": token}
        # Keep the previous refresh token when the server did not rotate it.
        refresh_token = refresh_token or self.refresh_token
        if refresh_token:
            data["refresh_token"] = refresh_token
        self._file.write(data)

    def clear(self) -> None:
        self._file.clear()


PREFERENCE_KEYS = ("search_term", "status_filter", "sort_by", "sort_order")


class PreferencesStore:
    """Filter, search and sort preferences. The task list itself is never persisted."""

    def __init__(self, path: Path):
        self._file = JsonFileStore(path)

    def load(self) -> dict:
        data = self._file.read()
        return {key: data[key] for key in PREFERENCE_KEYS if isinstance(data.get(key), str)}

    def save(self, **preferences: str) -> None:
        data = self.load()
        data.update({key: value for key, value in preferences.items() if key in PREFERENCE_KEYS})
        self._file.write(data)
