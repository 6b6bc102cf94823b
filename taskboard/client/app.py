from functools import partial

from taskboard.client.api import AuthAPI, TasksAPI, UsersAPI
from taskboard.client.auth_store import AuthStore
from taskboard.client.http import ApiClient
from taskboard.client.storage import CredentialStore, PreferencesStore
from taskboard.client.task_store import TaskStore
from taskboard.config import Settings


class ClientApp:
    """Everything the presentation layer needs, constructed once and passed down."""

    def __init__(self, settings: Settings, session=None):
        self.settings = settings
        self.credentials = CredentialStore(settings.state_dir / "credentials.json")
        self.preferences = PreferencesStore(settings.state_dir / "preferences.json")
        self.http = ApiClient(
            settings.api_url,
            self.credentials,
            timeout=settings.request_timeout,
            session=session,
        )
        self.auth = AuthStore(AuthAPI(self.http), UsersAPI(self.http), self.credentials)
        self.tasks = TaskStore(TasksAPI(self.http), self.preferences)
        # A failed refresh logs the user out; the dependency only points this way.
        self.http.on_session_expired = partial(self.auth.clear_session, expired=True)
