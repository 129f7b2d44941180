import os

# the app reads FLASK_* variables when it is first imported
os.environ.setdefault("FLASK_STORE_BACKEND", "sql")
os.environ.setdefault("FLASK_SQLALCHEMY_DATABASE_URI", "sqlite://")
os.environ.setdefault("FLASK_MIRROR_CACHE_TYPE", "SimpleCache")
os.environ.setdefault("FLASK_SECRET_KEY", "test-secret")
os.environ.setdefault("FLASK_ADMIN_BOOTSTRAP_PASSWORD", "edoardO2024")
os.environ.setdefault("FLASK_LOG_LEVEL", "WARNING")
os.environ.setdefault("FLASK_TESTING", "true")

import pytest

from ExpenseApp.app import app as flask_app, db
from ExpenseApp.app import expense_db  # noqa: F401
from ExpenseApp.app.data_store import ExpenseStore, StoreError
from ExpenseApp.app.services.local_mirror import LocalMirror
from ExpenseApp.app.services.repository import ExpenseRepository, get_repository

ADMIN = "edoardo"
ADMIN_PASSWORD = "edoardO2024"


class FailingStore(ExpenseStore):
    """Every call fails the way an unreachable store does."""

    def _fail(self, *args, **kwargs):
        raise StoreError("connection refused")

    list_suppliers = upsert_suppliers = delete_supplier = _fail
    list_entries = insert_entry = update_entry = delete_entry = _fail
    list_users = find_user = update_user_password = insert_user = delete_user = _fail


@pytest.fixture
def app():
    with flask_app.app_context():
        db.create_all()
        flask_app.extensions.pop("expense_store", None)
        LocalMirror().clear()
        yield flask_app
        LocalMirror().clear()
        flask_app.extensions.pop("expense_store", None)
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def repo(app):
    return get_repository()


@pytest.fixture
def failing_repo(app):
    return ExpenseRepository(FailingStore(), LocalMirror())


@pytest.fixture
def admin_client(client):
    response = client.post("/login", json={"username": ADMIN, "password": ADMIN_PASSWORD, "year": 2024})
    assert response.status_code == 200
    return client
