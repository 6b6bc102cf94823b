import hashlib
import hmac
import logging
import secrets
import uuid
from datetime import datetime, timezone

from taskboard.db import get_database
from taskboard.exceptions import AuthenticationError, ConflictError, NotFoundError
from taskboard.models.users import User

logger = logging.getLogger(__name__)

PASSWORD_ITERATIONS = 240_000


def hash_password(password: str) -> str:
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), bytes.fromhex(salt), PASSWORD_ITERATIONS)
    return f"pbkdf2_sha256${PASSWORD_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str | None) -> bool:
    if not encoded:
        return False
    try:
        algorithm, iterations, salt, expected = encoded.split("$")
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), bytes.fromhex(salt), int(iterations))
    return hmac.compare_digest(digest.hex(), expected)


def _users():
    return get_database()["users"]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_user(doc: dict) -> User:
    return User(
        id=doc["_id"],
        name=doc.get("name", ""),
        email=doc["email"],
        picture=doc.get("picture", ""),
    )


def create_user(name: str, email: str, password: str) -> User:
    """Register an email/password account. Emails are unique, case-insensitively."""
    email = email.lower()
    if _users().find_one({"email": email}):
        raise ConflictError("User already exists")
    now = _now()
    doc = {
        "_id": uuid.uuid4().hex,
        "name": name.strip(),
        "email": email,
        "picture": "",
        "password_hash": hash_password(password),
        "google_id": None,
        "created_at": now,
        "updated_at": now,
    }
    _users().insert_one(doc)
    logger.info("Registered user %s", doc["_id"])
    return _parse_user(doc)


def authenticate(email: str, password: str) -> User:
    doc = _users().find_one({"email": email.lower()})
    if not doc or not verify_password(password, doc.get("password_hash")):
        raise AuthenticationError("Invalid email or password")
    return _parse_user(doc)


def get_or_create_google_user(google_id: str, email: str, name: str, picture: str = "") -> User:
    """Find the account for a Google identity by email, creating it on first login."""
    email = email.lower()
    users = _users()
    doc = users.find_one({"email": email})
    if doc:
        changes = {"google_id": google_id, "updated_at": _now()}
        if picture and not doc.get("picture"):
            changes["picture"] = picture
        users.update_one({"_id": doc["_id"]}, {"$set": changes})
        doc.update(changes)
        return _parse_user(doc)

    now = _now()
    doc = {
        "_id": uuid.uuid4().hex,
        "name": name or email.split("@")[0],
        "email": email,
        "picture": picture,
        "password_hash": None,
        "google_id": google_id,
        "created_at": now,
        "updated_at": now,
    }
    users.insert_one(doc)
    logger.info("Created user %s from Google sign-in", doc["_id"])
    return _parse_user(doc)


def get_user(user_id: str) -> User:
    doc = _users().find_one({"_id": user_id})
    if not doc:
        raise NotFoundError("User not found")
    return _parse_user(doc)


def update_profile(user_id: str, name: str) -> User:
    """Change the display name, the only profile field users may edit."""
    result = _users().update_one({"_id": user_id}, {"$set": {"name": name.strip(), "updated_at": _now()}})
    if result.matched_count == 0:
        raise NotFoundError("User not found")
    return get_user(user_id)
