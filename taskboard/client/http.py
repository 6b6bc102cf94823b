"""HTTP client wrapper for the Taskboard API.

Attaches the stored bearer token to every request and recovers from an
expired access token by refreshing it once and replaying the request once.
Every failure leaves this module as an ``ApiError``.
"""

import logging
from collections.abc import Callable
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from taskboard.client.storage import CredentialStore

logger = logging.getLogger(__name__)

GENERIC_ERROR = "An unexpected error occurred"
NETWORK_ERROR = "Unable to reach the Taskboard server. Check your connection and try again."
REFRESH_PATH = "/api/auth/refresh"


class ApiError(Exception):
    """A failed API call, carrying the message to show the user."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class SessionExpiredError(ApiError):
    """The session could not be refreshed; the user has to log in again."""


def get_session() -> requests.Session:
    """Return a requests.Session that retries gateway errors on idempotent methods.

    Retries up to 3 times with exponential backoff (0.5s, 1s, 2s). POST and
    PATCH are never retried at this level so a create is not sent twice.
    """
    session = requests.Session()
    retry = Retry(
        total=3,
        backoff_factor=0.5,
        status_forcelist=[502, 503, 504],
        allowed_methods=["GET", "PUT", "DELETE"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def error_message(resp: requests.Response) -> str:
    """Pick the server-provided message, else the HTTP reason, else a generic fallback."""
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        for key in ("message", "detail"):
            if isinstance(data.get(key), str) and data[key]:
                return data[key]
    return resp.reason or GENERIC_ERROR


def decode_json(resp: requests.Response) -> Any:
    """Return the JSON body of a successful response, or raise ``ApiError`` if it is not JSON."""
    try:
        return resp.json()
    except ValueError as e:
        logger.warning("Response from %s is not JSON", resp.url)
        raise ApiError(GENERIC_ERROR, resp.status_code) from e


class ApiClient:
    def __init__(
        self,
        base_url: str,
        credentials: CredentialStore,
        *,
        timeout: float = 10.0,
        session: requests.Session | None = None,
        on_session_expired: Callable[[], None] | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials
        self.timeout = timeout
        self.session = session or get_session()
        self.on_session_expired = on_session_expired

    def _headers(self, auth: bool) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self.credentials.token if auth else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _send(self, method: str, path: str, *, json: Any = None, params: dict | None = None, auth: bool = True):
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            return self.session.request(
                method,
                url,
                json=json,
                params=params,
                headers=self._headers(auth),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise ApiError(NETWORK_ERROR) from e

    def _refresh(self) -> None:
        refresh_token = self.credentials.refresh_token
        if not refresh_token:
            raise ApiError("No refresh token available", 401)
        resp = self._send("POST", REFRESH_PATH, json={"refresh_token": refresh_token}, auth=False)
        if resp.status_code >= 400:
            raise ApiError(error_message(resp), resp.status_code)
        data = decode_json(resp)
        if not isinstance(data, dict) or not data.get("token"):
            raise ApiError(GENERIC_ERROR, resp.status_code)
        self.credentials.save(data["token"], data.get("refresh_token"))

    def _expire_session(self) -> None:
        self.credentials.clear()
        if self.on_session_expired is not None:
            self.on_session_expired()

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict | None = None,
        auth: bool = True,
        retried: bool = False,
    ) -> requests.Response:
        """Send a request and return the successful response.

        A 401 on an authenticated request that has not been retried yet
        triggers one token refresh and one replay with ``retried=True``.
        """
        resp = self._send(method, path, json=json, params=params, auth=auth)

        if resp.status_code == 401 and auth and not retried:
            logger.info("Access token rejected for %s %s, refreshing", method, path)
            try:
                self._refresh()
            except ApiError as e:
                logger.warning("Token refresh failed: %s", e.message)
                self._expire_session()
                raise SessionExpiredError("Your session has expired. Please log in again.", 401) from e
            return self.request(method, path, json=json, params=params, auth=auth, retried=True)

        if resp.status_code >= 400:
            raise ApiError(error_message(resp), resp.status_code)
        return resp

    def get(self, path: str, *, params: dict | None = None) -> requests.Response:
        return self.request("GET", path, params=params)

    def post(self, path: str, *, json: Any = None, auth: bool = True) -> requests.Response:
        return self.request("POST", path, json=json, auth=auth)

    def put(self, path: str, *, json: Any = None) -> requests.Response:
        return self.request("PUT", path, json=json)

    def patch(self, path: str, *, json: Any = None) -> requests.Response:
        return self.request("PATCH", path, json=json)

    def delete(self, path: str) -> requests.Response:
        return self.request("DELETE", path)
