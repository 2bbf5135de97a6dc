"""
Shared test fixtures.

Unit fixtures build the services by hand against an in-memory SQLite
database; HTTP fixtures go through create_app("testing").
"""
from datetime import timedelta

import pytest

from api import create_app
from models.db_storage import DBStorage
from models.user import User
from models.user_store import UserStore
from services.auth_service import AuthService
from services.authenticator import RequestAuthenticator
from utils.security import PasswordHasher
from utils.tokens import TokenCodec

ACCESS_SECRET = "unit-access-secret-0123456789abcdefgh"
REFRESH_SECRET = "unit-refresh-secret-0123456789abcdefgh"

ALICE = {
    "full_name": "Alice A",
    "email": "a@x.com",
    "username": "alice",
    "password": "pw123",
    "avatar": "https://cdn/x.png",
}


class FakeUploader:
    """Returns the reference as its URL; references named 'broken' fail."""

    def __init__(self):
        self.calls = []
        self.removed = []

    def upload(self, reference):
        self.calls.append(reference)
        if not reference or reference == "broken":
            return None
        return reference

    def remove(self, url):
        self.removed.append(url)


def count_users(storage) -> int:
    return storage.get_session().query(User).count()


@pytest.fixture
def storage():
    storage = DBStorage("sqlite://")
    storage.reload()
    yield storage
    storage.dispose()


@pytest.fixture
def store(storage):
    return UserStore(storage)


@pytest.fixture
def hasher():
    return PasswordHasher(time_cost=1, memory_cost=1024, parallelism=1)


@pytest.fixture
def codec():
    return TokenCodec(
        access_secret=ACCESS_SECRET,
        refresh_secret=REFRESH_SECRET,
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(days=10),
    )


@pytest.fixture
def uploader():
    return FakeUploader()


@pytest.fixture
def auth(store, hasher, codec, uploader):
    return AuthService(store, hasher, codec, uploader)


@pytest.fixture
def authenticator(store, codec):
    return RequestAuthenticator(store, codec)


@pytest.fixture
def alice(auth):
    """A registered user."""
    result = auth.register(**ALICE)
    assert result.ok, result.error
    return result.value


@pytest.fixture
def app(tmp_path):
    app = create_app(
        "testing",
        {
            "MEDIA_ROOT": str(tmp_path / "media"),
            "UPLOAD_TMP_DIR": str(tmp_path / "tmp"),
        },
    )
    yield app
    app.extensions["services"].storage.dispose()


@pytest.fixture
def client(app):
    # Tokens are passed explicitly so each test controls what is sent
    return app.test_client(use_cookies=False)
