"""Shared pytest fixtures for all tests."""

import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from fragments.auth import BasicAuthenticator, get_authenticator, hash_password
from fragments.storage.memory import MemoryStorageBackend
from fragments.storage.sqlite import SqliteStorageBackend

TEST_USERS = {
    "user1@email.com": "password1",
    "user2@email.com": "password2",
}


@pytest.fixture
def memory_storage():
    """
    Fresh in-memory storage backend.
    """
    return MemoryStorageBackend()


@pytest.fixture
def sqlite_storage(tmp_path):
    """
    SQLite storage backend on a temporary database file.
    """
    return SqliteStorageBackend(str(tmp_path / "fragments.db"))


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path):
    """
    Each storage backend in turn, so contract tests run against both.
    """
    if request.param == "memory":
        return MemoryStorageBackend()
    return SqliteStorageBackend(str(tmp_path / "fragments.db"))


@pytest.fixture(scope="session")
def authenticator():
    """
    Authenticator holding the test users (cheap bcrypt rounds).
    """
    return BasicAuthenticator(
        {username: hash_password(password, rounds=4) for username, password in TEST_USERS.items()}
    )


@pytest.fixture
def client(monkeypatch, authenticator):
    """
    Test client for the fragments API with in-memory storage and test users.
    """
    monkeypatch.setattr("fragments.config.STORAGE_BACKEND", "memory")
    monkeypatch.setattr("fragments.config.HTPASSWD_FILE", "")

    from fragments.main import app

    app.dependency_overrides[get_authenticator] = lambda: authenticator
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def user1():
    return ("user1@email.com", TEST_USERS["user1@email.com"])


@pytest.fixture
def user2():
    return ("user2@email.com", TEST_USERS["user2@email.com"])


def make_image(format_name: str = "PNG", mode: str = "RGBA", size=(4, 4)) -> bytes:
    """
    Encode a small solid image in the given Pillow format.
    """
    color = (200, 30, 30, 128) if mode == "RGBA" else (200, 30, 30)
    output = io.BytesIO()
    Image.new(mode, size, color).save(output, format=format_name)
    return output.getvalue()


@pytest.fixture
def png_bytes():
    return make_image("PNG", "RGBA")


@pytest.fixture
def jpeg_bytes():
    return make_image("JPEG", "RGB")
