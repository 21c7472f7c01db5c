import io
import os
import uuid
import asyncio
import tempfile

os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="sheetboard-tests-"))
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from openpyxl import Workbook
from starlette.testclient import TestClient
from main import app
from core import state, users
from core.constants import main_values
from core.constants.main_values import STORAGE_FILE, WAL_FILE

ADMIN_EMAIL = "admin@example.com"


def _remove_files():
    for path in (STORAGE_FILE, WAL_FILE):
        if os.path.exists(path):
            os.remove(path)


@pytest.fixture(scope="function", autouse=True)
def clean_database(monkeypatch):
    """Clean database before each test"""
    _remove_files()
    state.reset()
    monkeypatch.setattr(main_values, "ADMIN_EMAILS", {ADMIN_EMAIL})

    yield

    _remove_files()
    state.reset()


@pytest.fixture(autouse=True)
def disable_rate_limit():
    if hasattr(app.state, "limiter"):
        app.state.limiter.enabled = False
    yield
    if hasattr(app.state, "limiter"):
        app.state.limiter.enabled = True


@pytest.fixture(scope="function")
def client():
    """Create a test client"""
    with TestClient(app) as test_client:
        yield test_client


def register(client, email: str, name: str = "Test User", password: str = "secret123") -> dict:
    response = client.post("/api/users/register", json={
        "name": name, "email": email, "password": password
    })
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    return {"headers": {"Authorization": f"Bearer {data['token']}"}, "user": data["user"]}


@pytest.fixture
def alice(client):
    return register(client, "alice@example.com", name="Alice")


@pytest.fixture
def bob(client):
    return register(client, "bob@example.com", name="Bob")


@pytest.fixture
def admin(client):
    return register(client, ADMIN_EMAIL, name="Admin")


def make_xlsx(*sheets) -> bytes:
    """Each sheet is a (title, rows) pair."""
    workbook = Workbook()
    workbook.remove(workbook.active)
    for title, rows in sheets:
        sheet = workbook.create_sheet(title)
        for row in rows:
            sheet.append(row)

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def new_owner():
    """Registers a throwaway account and returns its id."""
    account = asyncio.run(users.register_user("Owner", f"{uuid.uuid4().hex}@example.com", "secret123"))
    return account.id
