import pytest
from fastapi.testclient import TestClient

from library_api.config import Settings
from library_api.main import create_app


@pytest.fixture
def settings(tmp_path):
    # fresh sqlite file per test
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'library.db'}",
        jwt_secret="test-secret",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db_session(app):
    session = app.state.context.session_factory()
    try:
        yield session
    finally:
        session.close()


def register_user(client, email, password, role=None, name="Tester"):
    payload = {"name": name, "email": email, "password": password}
    if role is not None:
        payload["role"] = role
    return client.post("/auth/register", json=payload)


def login_user(client, email, password):
    return client.post("/auth/login", json={"email": email, "password": password})


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(client):
    register_user(client, "admin@library.com", "adminpass", "admin", name="Admin")
    token = login_user(client, "admin@library.com", "adminpass").json()["token"]
    return auth_headers(token)


@pytest.fixture
def user_headers(client):
    register_user(client, "user@library.com", "userpass", name="User")
    token = login_user(client, "user@library.com", "userpass").json()["token"]
    return auth_headers(token)


@pytest.fixture
def book(client, user_headers):
    res = client.post("/books", json={"title": "T", "author": "A", "year": 2020, "genre": "G"}, headers=user_headers)
    return res.json()["book"]


@pytest.fixture
def reader(client):
    res = client.post("/readers", json={"name": "R", "email": "r@x.com", "phone": "1"})
    return res.json()["reader"]
