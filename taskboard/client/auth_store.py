import logging

from pydantic import BaseModel, ValidationError

from taskboard.client.api import AuthAPI, UsersAPI
from taskboard.client.http import ApiError
from taskboard.client.storage import CredentialStore
from taskboard.client.store import Store
from taskboard.models.users import AuthResponse, User

logger = logging.getLogger(__name__)

UNEXPECTED_RESPONSE = "Unexpected response from server"


def _message(error: Exception) -> str:
    return error.message if isinstance(error, ApiError) else UNEXPECTED_RESPONSE


class AuthState(BaseModel):
    user: User | None = None
    is_authenticated: bool = False
    is_loading: bool = False
    error: str | None = None
    session_expired: bool = False


class AuthStore(Store[AuthState]):
    """Current user and session.

    ``clear_session(expired=True)`` is what the HTTP client calls when a
    token refresh fails; this store never reaches back into the HTTP client's state.
    """

    def __init__(self, auth_api: AuthAPI, users_api: UsersAPI, credentials: CredentialStore):
        super().__init__(AuthState())
        self.auth_api = auth_api
        self.users_api = users_api
        self.credentials = credentials

    def _login(self, call, *args) -> User:
        self._set(is_loading=True, error=None)
        try:
            result: AuthResponse = call(*args)
        except (ApiError, ValidationError) as e:
            message = _message(e)
            logger.warning("Login failed: %s", message)
            self.credentials.clear()
            self._set(user=None, is_authenticated=False, is_loading=False, error=message)
            raise
        self._set(user=result.user, is_authenticated=True, is_loading=False, session_expired=False)
        return result.user

    def login_with_google(self, credential: str) -> User:
        return self._login(self.auth_api.login_with_google, credential)

    def login_with_email(self, email: str, password: str) -> User:
        return self._login(self.auth_api.login, email, password)

    def register(self, name: str, email: str, password: str) -> User:
        return self._login(self.auth_api.register, name, email, password)

    def clear_session(self, expired: bool = False) -> None:
        """Forget the session locally without contacting the server.

        ``expired`` marks a session the server refused to refresh.
        """
        self.credentials.clear()
        self._set(user=None, is_authenticated=False, is_loading=False, session_expired=expired)

    def logout(self) -> None:
        """Clear the local session, then ask the server to revoke the refresh token."""
        refresh_token = self.credentials.refresh_token
        self.clear_session()
        try:
            self.auth_api.logout(refresh_token)
        except ApiError as e:
            # The local session is gone either way.
            logger.warning("Server logout failed: %s", e.message)

    def restore(self) -> bool:
        """Re-establish the user from a persisted token. Returns True when authenticated."""
        token = self.credentials.token
        if not token:
            self._set(user=None, is_authenticated=False)
            return False
        self._set(is_loading=True, error=None)
        try:
            try:
                user = self.auth_api.verify(token)
            except ApiError as e:
                if e.status_code != 401:
                    raise
                # Expired access token: go through the refresh path.
                user = self.users_api.get_current_user()
        except (ApiError, ValidationError) as e:
            logger.info("Could not restore session: %s", _message(e))
            if isinstance(e, ApiError) and e.status_code == 401:
                self.credentials.clear()
            self._set(user=None, is_authenticated=False, is_loading=False, error=_message(e))
            return False
        self._set(user=user, is_authenticated=True, is_loading=False, session_expired=False)
        return True

    def update_profile(self, name: str) -> User:
        """Change the display name. Re-raises on failure."""
        self._set(is_loading=True, error=None)
        try:
            user = self.users_api.update_profile(name=name)
        except (ApiError, ValidationError) as e:
            self._set(is_loading=False, error=_message(e))
            raise
        self._set(user=user, is_loading=False)
        return user
