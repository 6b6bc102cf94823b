import logging
import uuid
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from google.auth.transport.requests import Request
from google.oauth2 import id_token
from google_auth_oauthlib.flow import Flow

from taskboard.config import get_settings
from taskboard.db import get_database
from taskboard.exceptions import AuthenticationError, NotFoundError
from taskboard.models.users import (
    AuthResponse,
    GoogleLoginRequest,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    User,
    VerifyRequest,
    VerifyResponse,
)
from taskboard.services import users as users_service

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

GOOGLE_SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
]


# --- Session tokens ---


def _sessions():
    return get_database()["sessions"]


def create_access_token(user_id: str) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(minutes=settings.access_token_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGORITHM)


def create_refresh_token(user_id: str) -> str:
    """Issue a refresh token and record its id so it can be rotated or revoked.

    Expired session records are pruned here; MongoDB also drops them through
    the TTL index on ``expires_at``.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expires = now + timedelta(days=settings.refresh_token_days)
    jti = uuid.uuid4().hex
    sessions = _sessions()
    pruned = sessions.delete_many({"expires_at": {"$lt": now}}).deleted_count
    if pruned:
        logger.debug("Pruned %d expired sessions", pruned)
    sessions.insert_one({"_id": jti, "user_id": user_id, "expires_at": expires})
    payload = {"sub": user_id, "type": "refresh", "jti": jti, "iat": now, "exp": expires}
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGORITHM)


def decode_token(token: str, expected_type: str) -> dict:
    try:
        payload = jwt.decode(token, get_settings().jwt_secret, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise AuthenticationError("Session expired") from e
    except jwt.InvalidTokenError as e:
        raise AuthenticationError("Invalid session token") from e
    if payload.get("type") != expected_type or "sub" not in payload:
        raise AuthenticationError("Invalid session token")
    return payload


def issue_session(user: User) -> AuthResponse:
    return AuthResponse(
        token=create_access_token(user.id),
        refresh_token=create_refresh_token(user.id),
        user=user,
    )


def refresh_session(refresh_token: str) -> AuthResponse:
    """Exchange a live refresh token for a new session. The old refresh token stops working."""
    payload = decode_token(refresh_token, "refresh")
    result = _sessions().delete_one({"_id": payload.get("jti"), "user_id": payload["sub"]})
    if result.deleted_count == 0:
        raise AuthenticationError("Session has been revoked")
    try:
        user = users_service.get_user(payload["sub"])
    except NotFoundError as e:
        raise AuthenticationError("Not authorized, user not found") from e
    return issue_session(user)


def revoke_session(refresh_token: str) -> None:
    try:
        payload = decode_token(refresh_token, "refresh")
    except AuthenticationError:
        logger.debug("Ignoring logout with an unusable refresh token")
        return
    _sessions().delete_one({"_id": payload.get("jti")})


def user_from_access_token(token: str) -> User:
    payload = decode_token(token, "access")
    try:
        return users_service.get_user(payload["sub"])
    except NotFoundError as e:
        raise AuthenticationError("Not authorized, user not found") from e


bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme)) -> User:
    """FastAPI dependency resolving the bearer token to its user."""
    if credentials is None:
        raise AuthenticationError("Not authorized, no token")
    return user_from_access_token(credentials.credentials)


# --- Google identity ---


def verify_google_credential(credential: str, client_id: str | None = None) -> dict:
    """Verify a Google ID token and return its claims."""
    client_id = client_id or get_settings().google_client_id
    if not client_id:
        raise AuthenticationError("Google sign-in is not configured. Set GOOGLE_CLIENT_ID in .env")
    try:
        info = id_token.verify_oauth2_token(credential, Request(), client_id)
    except ValueError as e:
        raise AuthenticationError(f"Invalid Google credential: {e}") from e
    if not info.get("email"):
        raise AuthenticationError("Google account has no email address")
    return info


def _google_login(info: dict) -> AuthResponse:
    user = users_service.get_or_create_google_user(
        google_id=info["sub"],
        email=info["email"],
        name=info.get("name", ""),
        picture=info.get("picture", ""),
    )
    return issue_session(user)


def _redirect_uri() -> str:
    settings = get_settings()
    return f"http://localhost:{settings.port}/api/auth/google/callback"


def _create_flow() -> Flow:
    settings = get_settings()
    if not settings.client_secret_file.exists():
        raise FileNotFoundError(
            f"OAuth client secret file not found at {settings.client_secret_file}. "
            "Download it from Google Cloud Console."
        )
    return Flow.from_client_secrets_file(
        str(settings.client_secret_file),
        scopes=GOOGLE_SCOPES,
        redirect_uri=_redirect_uri(),
    )


# --- Auth router ---

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/google")
def login_with_google(request: GoogleLoginRequest) -> AuthResponse:
    """Sign in with a Google ID token obtained by the client."""
    return _google_login(verify_google_credential(request.credential))


# Server-side redirect flow, for clients that cannot obtain an ID token themselves.

@router.get("/google/setup")
def google_setup():
    """Redirect to the Google consent screen."""
    try:
        flow = _create_flow()
    except FileNotFoundError as e:
        raise AuthenticationError(str(e)) from e
    auth_url, _ = flow.authorization_url(prompt="select_account")
    return RedirectResponse(auth_url)


@router.get("/google/callback")
def google_callback(code: str) -> AuthResponse:
    """Exchange the authorization code and sign the Google user in."""
    try:
        flow = _create_flow()
    except FileNotFoundError as e:
        raise AuthenticationError(str(e)) from e
    flow.fetch_token(code=code)
    google_id_token = getattr(flow.credentials, "id_token", None)
    if not google_id_token:
        raise AuthenticationError("Google did not return an ID token")
    client_id = flow.client_config.get("client_id")
    return _google_login(verify_google_credential(google_id_token, client_id))


@router.post("/login")
def login(request: LoginRequest) -> AuthResponse:
    user = users_service.authenticate(request.email, request.password)
    logger.info("User %s logged in", user.id)
    return issue_session(user)


@router.post("/refresh")
def refresh(request: RefreshRequest) -> AuthResponse:
    return refresh_session(request.refresh_token)


@router.post("/logout", status_code=204)
def logout(request: LogoutRequest | None = None):
    if request and request.refresh_token:
        revoke_session(request.refresh_token)


@router.post("/verify")
def verify(request: VerifyRequest) -> VerifyResponse:
    return VerifyResponse(user=user_from_access_token(request.token))
