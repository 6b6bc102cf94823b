import pytest

from taskboard.exceptions import AuthenticationError, ConflictError, NotFoundError
from taskboard.services import users as users_service


class TestPasswords:
    def test_hash_round_trip(self):
        encoded = users_service.hash_password("s3cret")
        assert encoded.startswith("pbkdf2_sha256$")
        assert users_service.verify_password("s3cret", encoded)
        assert not users_service.verify_password("wrong", encoded)

    def test_salted(self):
        assert users_service.hash_password("same") != users_service.hash_password("same")

    def test_rejects_missing_or_malformed_hash(self):
        assert not users_service.verify_password("x", None)
        assert not users_service.verify_password("x", "plaintext")


class TestCreateUser:
    def test_creates_user(self):
        user = users_service.create_user("Bob", "Bob@Example.com", "hunter22")
        assert user.id
        assert user.name == "Bob"
        assert user.email == "bob@example.com"

    def test_duplicate_email(self, user):
        with pytest.raises(ConflictError):
            users_service.create_user("Other Bob", "BOB@example.com", "password1")


class TestAuthenticate:
    def test_valid_credentials(self, user):
        assert users_service.authenticate("bob@example.com", "hunter22").id == user.id

    def test_wrong_password(self, user):
        with pytest.raises(AuthenticationError):
            users_service.authenticate("bob@example.com", "nope")

    def test_unknown_email(self):
        with pytest.raises(AuthenticationError):
            users_service.authenticate("ghost@example.com", "hunter22")


class TestGoogleUsers:
    def test_creates_on_first_login(self):
        user = users_service.get_or_create_google_user("g-1", "Ada@example.com", "Ada", "https://pic")
        assert user.email == "ada@example.com"
        assert user.name == "Ada"
        assert user.picture == "https://pic"

    def test_reuses_account_with_same_email(self, user):
        linked = users_service.get_or_create_google_user("g-2", "bob@example.com", "Robert", "https://pic")
        assert linked.id == user.id
        assert linked.name == "Bob"
        assert linked.picture == "https://pic"

    def test_google_only_account_cannot_password_login(self):
        users_service.get_or_create_google_user("g-3", "g@example.com", "G")
        with pytest.raises(AuthenticationError):
            users_service.authenticate("g@example.com", "")


class TestProfile:
    def test_update_name(self, user):
        updated = users_service.update_profile(user.id, "  Robert ")
        assert updated.name == "Robert"
        assert users_service.get_user(user.id).name == "Robert"

    def test_unknown_user(self):
        with pytest.raises(NotFoundError):
            users_service.update_profile("missing", "X")
