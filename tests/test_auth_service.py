import pytest

from services.auth_service import AuthService
from utils.security import PasswordHasher
from utils.results import ErrorKind
from utils.tokens import TokenKind

from .conftest import ALICE, count_users


def _register(auth, **overrides):
    fields = dict(ALICE)
    fields.update(overrides)
    return auth.register(**fields)


class TestRegister:

    def test_register_scenario(self, auth, store):
        result = _register(auth)
        assert result.ok
        stored = store.get_by_identity(username="alice")
        assert stored.id == result.value.id
        assert stored.password_hash and stored.password_hash != "pw123"
        assert stored.avatar_url == "https://cdn/x.png"
        assert stored.cover_image_url == ""
        assert stored.refresh_token is None

    def test_identity_is_lowercased(self, auth):
        result = _register(auth, username="  Alice ", email="A@X.COM")
        assert result.value.username == "alice"
        assert result.value.email == "a@x.com"

    @pytest.mark.parametrize("field", ["full_name", "email", "username", "password"])
    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_blank_fields_rejected(self, auth, storage, field, value):
        result = _register(auth, **{field: value})
        assert result.error.kind is ErrorKind.VALIDATION
        assert result.error.message == "All fields are required"
        assert count_users(storage) == 0

    @pytest.mark.parametrize("overrides", [{}, {"email": "other@x.com"}, {"username": "other"}])
    def test_duplicate_identity_conflicts(self, auth, storage, uploader, overrides):
        assert _register(auth).ok
        uploads_before = len(uploader.calls)
        result = _register(auth, **overrides)
        assert result.error.kind is ErrorKind.CONFLICT
        assert count_users(storage) == 1
        assert len(uploader.calls) == uploads_before

    def test_avatar_required(self, auth, storage):
        result = _register(auth, avatar=None)
        assert result.error.kind is ErrorKind.VALIDATION
        assert result.error.message == "Avatar file is required"
        assert count_users(storage) == 0

    def test_failed_avatar_upload_aborts(self, auth, storage):
        result = _register(auth, avatar="broken")
        assert result.error.kind is ErrorKind.VALIDATION
        assert count_users(storage) == 0

    def test_cover_image_optional(self, auth):
        result = _register(auth, cover_image="https://cdn/cover.png")
        assert result.value.cover_image_url == "https://cdn/cover.png"
        other = _register(auth, username="bob", email="b@x.com", cover_image="broken")
        assert other.ok
        assert other.value.cover_image_url == ""

    def test_store_level_duplicate_is_conflict(self, auth, store, monkeypatch):
        assert _register(auth).ok
        # the existence check misses, as it would under a concurrent insert
        monkeypatch.setattr(store, "get_by_identity", lambda **kwargs: None)
        result = _register(auth)
        assert result.error.kind is ErrorKind.CONFLICT

    def test_conflict_at_insert_discards_uploads(self, auth, store, uploader, monkeypatch):
        assert _register(auth).ok
        monkeypatch.setattr(store, "get_by_identity", lambda **kwargs: None)
        result = _register(auth, cover_image="https://cdn/cover.png")
        assert result.error.kind is ErrorKind.CONFLICT
        assert uploader.removed == ["https://cdn/x.png", "https://cdn/cover.png"]

    def test_successful_register_keeps_uploads(self, auth, uploader):
        assert _register(auth).ok
        assert uploader.removed == []


class TestLogin:

    def test_login_issues_pair_and_persists_refresh(self, auth, alice, store, codec):
        result = auth.login(password="pw123", username="alice")
        assert result.ok
        tokens = result.value.tokens
        assert tokens.access.token and tokens.refresh.token
        assert tokens.access.token != tokens.refresh.token
        assert store.get_by_id(alice.id).refresh_token == tokens.refresh.token
        assert codec.verify(tokens.access.token, TokenKind.ACCESS).value["sub"] == alice.id

    def test_login_by_email(self, auth, alice):
        result = auth.login(password="pw123", email="A@x.com")
        assert result.value.user.id == alice.id

    def test_unknown_user(self, auth, alice):
        result = auth.login(password="pw123", username="mallory")
        assert result.error.kind is ErrorKind.NOT_FOUND

    def test_wrong_password(self, auth, alice, store):
        result = auth.login(password="pw124", username="alice")
        assert result.error.kind is ErrorKind.UNAUTHORIZED
        assert store.get_by_id(alice.id).refresh_token is None

    def test_identity_required(self, auth):
        assert auth.login(password="pw123").error.kind is ErrorKind.VALIDATION
        assert auth.login(password="", username="alice").error.kind is ErrorKind.VALIDATION

    def test_new_login_replaces_previous_session(self, auth, alice):
        first = auth.login(password="pw123", username="alice").value
        auth.login(password="pw123", username="alice")
        result = auth.refresh(first.tokens.refresh.token)
        assert result.error.kind is ErrorKind.UNAUTHORIZED

    def test_outdated_digest_is_upgraded(self, store, codec, uploader, alice):
        stronger = PasswordHasher(time_cost=2, memory_cost=2048, parallelism=1)
        old_digest = store.get_by_id(alice.id).password_hash
        auth = AuthService(store, stronger, codec, uploader)
        assert auth.login(password="pw123", username="alice").ok
        new_digest = store.get_by_id(alice.id).password_hash
        assert new_digest != old_digest
        assert stronger.needs_rehash(new_digest) is False


class TestRefresh:

    def test_rotation_scenario(self, auth, alice, store):
        login = auth.login(password="pw123", username="alice").value
        r1 = login.tokens.refresh.token

        rotated = auth.refresh(r1)
        assert rotated.ok
        r2 = rotated.value.tokens.refresh.token
        assert r2 != r1
        assert store.get_by_id(alice.id).refresh_token == r2

        replay = auth.refresh(r1)
        assert replay.error.kind is ErrorKind.UNAUTHORIZED
        assert replay.error.message == "Refresh token is expired or used"
        # the replay did not disturb the current session
        assert auth.refresh(r2).ok

    def test_missing_token(self, auth):
        for token in (None, "", "  "):
            result = auth.refresh(token)
            assert result.error.kind is ErrorKind.UNAUTHORIZED
            assert result.error.message == "Unauthorized request"

    def test_invalid_token(self, auth, alice):
        login = auth.login(password="pw123", username="alice").value
        for token in ("garbage", login.tokens.access.token):
            result = auth.refresh(token)
            assert result.error.kind is ErrorKind.UNAUTHORIZED
            assert result.error.message == "Invalid refresh token"

    def test_unknown_user(self, auth, codec):
        token = codec.issue_refresh("no-such-user").token
        assert auth.refresh(token).error.kind is ErrorKind.UNAUTHORIZED

    def test_concurrent_rotation_loses_swap(self, auth, alice, store, codec, monkeypatch):
        r1 = auth.login(password="pw123", username="alice").value.tokens.refresh.token
        issue_refresh = codec.issue_refresh

        def racing_issue(user_id):
            # another rotation lands between the equality check and the write
            store.set_refresh_token(user_id, "rotated-elsewhere")
            return issue_refresh(user_id)

        monkeypatch.setattr(codec, "issue_refresh", racing_issue)
        result = auth.refresh(r1)
        assert result.error.kind is ErrorKind.UNAUTHORIZED
        assert store.get_by_id(alice.id).refresh_token == "rotated-elsewhere"


class TestLogout:

    def test_logout_revokes_refresh_token(self, auth, alice, store):
        r1 = auth.login(password="pw123", username="alice").value.tokens.refresh.token
        assert auth.logout(alice).ok
        assert store.get_by_id(alice.id).refresh_token is None
        assert auth.refresh(r1).error.kind is ErrorKind.UNAUTHORIZED

    def test_logout_twice(self, auth, alice):
        auth.login(password="pw123", username="alice")
        assert auth.logout(alice).ok
        assert auth.logout(alice).ok


class TestChangePassword:

    def test_change_password(self, auth, alice, store):
        r1 = auth.login(password="pw123", username="alice").value.tokens.refresh.token
        assert auth.change_password(alice, "pw123", "new-secret").ok
        assert auth.login(password="pw123", username="alice").error.kind is ErrorKind.UNAUTHORIZED
        login = auth.login(password="new-secret", username="alice")
        assert login.ok
        assert r1 != login.value.tokens.refresh.token

    def test_refresh_token_untouched(self, auth, alice, store):
        r1 = auth.login(password="pw123", username="alice").value.tokens.refresh.token
        assert auth.change_password(alice, "pw123", "new-secret").ok
        assert store.get_by_id(alice.id).refresh_token == r1
        assert auth.refresh(r1).ok

    def test_wrong_old_password(self, auth, alice, store):
        digest = store.get_by_id(alice.id).password_hash
        result = auth.change_password(alice, "wrong", "new-secret")
        assert result.error.kind is ErrorKind.UNAUTHORIZED
        assert store.get_by_id(alice.id).password_hash == digest

    def test_blank_new_password(self, auth, alice):
        result = auth.change_password(alice, "pw123", " ")
        assert result.error.kind is ErrorKind.VALIDATION


class TestProfileImages:

    def test_update_avatar(self, auth, alice):
        result = auth.update_avatar(alice, "https://cdn/new.png")
        assert result.value.avatar_url == "https://cdn/new.png"

    def test_update_cover_image(self, auth, alice):
        result = auth.update_cover_image(alice, "https://cdn/cover.png")
        assert result.value.cover_image_url == "https://cdn/cover.png"

    def test_missing_or_failed_upload(self, auth, alice):
        assert auth.update_avatar(alice, None).error.kind is ErrorKind.VALIDATION
        assert auth.update_avatar(alice, "broken").error.kind is ErrorKind.VALIDATION
