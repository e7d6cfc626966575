import mongomock
import pytest
from fastapi.testclient import TestClient

import database
import storage
from main import app

from .factories import ADMIN_ID, OTHER_USER_ID, USER_ID, auth_headers


@pytest.fixture(autouse=True)
def mongo(monkeypatch):
    mock_db = mongomock.MongoClient(tz_aware=True)["storefront_test"]
    monkeypatch.setattr(database, "db", mock_db)
    return mock_db


@pytest.fixture
def client(mongo):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_headers(mongo):
    storage.upsert_user(ADMIN_ID, email="admin@shop.com")
    storage.set_admin(ADMIN_ID)
    return auth_headers(ADMIN_ID)


@pytest.fixture
def user_headers(mongo):
    storage.upsert_user(USER_ID, email="ada@example.com")
    return auth_headers(USER_ID)


@pytest.fixture
def other_user_headers(mongo):
    storage.upsert_user(OTHER_USER_ID, email="bob@example.com")
    return auth_headers(OTHER_USER_ID)
