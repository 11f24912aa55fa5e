import os
from typing import Dict

import pytest
from fastapi.testclient import TestClient
from minio.error import S3Error
from sqlmodel import SQLModel, Session, create_engine

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("ADMIN_ACCESS_TOKEN", "admin-test-token")
os.environ.setdefault("SEAL_MODE", "inline")

from contractdesk.main import app  # noqa: E402
from contractdesk import db as db_module  # noqa: E402
from contractdesk.db import get_session  # noqa: E402
from contractdesk import storage as storage_module  # noqa: E402
from contractdesk import sealing as sealing_module  # noqa: E402
from contractdesk.routers import contracts as contracts_router  # noqa: E402
from contractdesk.routers import signing as signing_router  # noqa: E402

ADMIN_HEADERS = {"X-Access-Token": os.environ["ADMIN_ACCESS_TOKEN"]}


@pytest.fixture(scope="session")
def test_engine(tmp_path_factory):
    db_path = tmp_path_factory.mktemp("data") / "test.db"
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )
    return engine


@pytest.fixture
def setup_db(test_engine):
    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def session(test_engine, setup_db):
    with Session(test_engine) as s:
        yield s


@pytest.fixture
def mock_storage(monkeypatch) -> Dict[str, bytes]:
    store: Dict[str, bytes] = {}

    def fake_put_bytes(key: str, data: bytes, content_type: str = "application/octet-stream"):
        store[key] = bytes(data)

    def fake_get_bytes(key: str) -> bytes:
        if key not in store:
            raise S3Error(
                response=None,
                code="NoSuchKey",
                message="missing",
                resource=f"/{key}",
                request_id="test-request",
                host_id="test-host",
            )
        return store[key]

    def fake_delete_object(key: str):
        store.pop(key, None)

    for target in (storage_module, sealing_module, contracts_router, signing_router):
        if hasattr(target, "put_bytes"):
            monkeypatch.setattr(target, "put_bytes", fake_put_bytes)
        if hasattr(target, "get_bytes"):
            monkeypatch.setattr(target, "get_bytes", fake_get_bytes)
        if hasattr(target, "delete_object"):
            monkeypatch.setattr(target, "delete_object", fake_delete_object)
    return store


@pytest.fixture
def client(test_engine, setup_db, mock_storage):
    db_module.engine = test_engine

    def override_session():
        with Session(test_engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def register(client, email, role="client", full_name=None):
    response = client.post(
        "/api/users",
        json={"email": email, "role": role, "full_name": full_name},
        headers=ADMIN_HEADERS,
    )
    assert response.status_code == 201, response.text
    data = response.json()
    return data["id"], {"X-Access-Token": data["access_token"]}


@pytest.fixture
def producer(client):
    return register(client, "producer@example.com", role="admin", full_name="Pat Producer")


@pytest.fixture
def signer(client):
    return register(client, "client@example.com", full_name="Casey Client")
