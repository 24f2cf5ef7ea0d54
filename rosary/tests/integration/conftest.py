"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - The app is created once per session with create_app("testing"). The
    testing config points at in-memory SQLite unless TEST_DATABASE_URL names
    a real database. It never starts the scheduler thread and sets
    ROTATION_RUN_INLINE, so rotations submitted through the admin endpoints
    run on the request thread.
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.

Helper functions (not fixtures) are provided for common operations:
  - register(client, ...)    → dict with user + access_token
  - login(client, ...)       → dict with user + access_token
  - make_admin(app, client)  → dict with user + access_token for an ADMIN
  - auth_headers(token)      → {"Authorization": "Bearer <token>"}
  - make_group(client, ...)  → group dict
  - add_member(...)          → HTTP response

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test.
"""

from __future__ import annotations

import pytest
from sqlalchemy import text

from rosary.app import create_app
from rosary.app.extensions import db as _db
from rosary.app.models.user import UserRole
from rosary.app.services import auth_service

PASSWORD = "Password1"


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows after every test, children first.
    Also forgets the scheduler's in-memory guard.
    """
    yield

    with app.app_context():
        _db.session.rollback()
        for table in (
                "assigned_mystery_history",
                "prayer_intentions",
                "rotation_runs",
                "memberships",
                "groups",
                "users",
        ):
            _db.session.execute(text(f"DELETE FROM {table}"))
        _db.session.commit()

    app.extensions["rotation_scheduler"].last_rotation_date = None


@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


@pytest.fixture
def scheduler(app):
    return app.extensions["rotation_scheduler"]


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def register(
    client,
    name: str = "Maria",
    email: str | None = None,
    password: str = PASSWORD,
) -> dict:
    """
    Registers a new MEMBER and returns the response data dict.
    Returns: {"user": {...}, "access_token": "..."}
    """
    if email is None:
        email = f"{name.lower().replace(' ', '.')}@test.com"
    resp = client.post(
        "/api/v1/auth/register",
        json={"name": name, "email": email, "password": password},
    )
    assert resp.status_code == 201, f"register failed: {resp.get_json()}"
    return resp.get_json()["data"]


def login(client, email: str, password: str = PASSWORD) -> dict:
    resp = client.post(
        "/api/v1/auth/login",
        json={"email": email, "password": password},
    )
    assert resp.status_code == 200, f"login failed: {resp.get_json()}"
    return resp.get_json()["data"]


def make_admin(app, client, email: str = "admin@test.com") -> dict:
    """
    Creates an ADMIN directly through the service layer (the API never hands
    out the ADMIN role) and logs in.
    """
    with app.app_context():
        auth_service.create_user(email, "Admin", PASSWORD, _db.session, role=UserRole.ADMIN)
        _db.session.commit()
    return login(client, email)


def auth_headers(token: str) -> dict:
    """Returns the Authorization header dict for use in test requests."""
    return {"Authorization": f"Bearer {token}"}


def make_group(
    client,
    token: str,
    name: str = "Rose of St. Joseph",
    zelator_user_id: int | None = None,
) -> dict:
    """Creates a group (admin token required) and returns the group data dict."""
    payload: dict = {"name": name}
    if zelator_user_id is not None:
        payload["zelator_user_id"] = zelator_user_id
    resp = client.post(
        "/api/v1/groups/",
        json=payload,
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"make_group failed: {resp.get_json()}"
    return resp.get_json()["data"]


def add_member(client, token: str, group_id: int, user_id: int):
    """Adds a user to a group (manager token required). Returns the HTTP response."""
    return client.post(
        f"/api/v1/groups/{group_id}/members",
        json={"user_id": user_id},
        headers=auth_headers(token),
    )
