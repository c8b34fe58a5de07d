"""Pytest shared fixtures: in-memory database, seeded roles and bearer tokens."""
import os
import pathlib
import sys
import time
from typing import Optional

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Configure test environment BEFORE any app imports
os.environ.setdefault("DEMO_MODE", "true")

import jwt
import pytest
from sqlalchemy import select
from werkzeug.security import generate_password_hash

from cams.config import AppConfig
from cams.core.database import db
from cams.core.models import Role, User, UserRole
from cams.core.rbac import RequestContext
from cams.flask_app import create_app
from scripts.seed import seed_roles

TEST_JWT_SECRET = "test-jwt-secret-for-cams-unit-tests-0123456789"
TEST_AUDIT_KEY = "test-signing-key-for-audit-trail"


@pytest.fixture()
def app_config(tmp_path) -> AppConfig:
    return AppConfig(
        demo_mode=True,
        secret_key="test-secret",
        database_url="sqlite://",
        jwt_secret_key=TEST_JWT_SECRET,
        jwt_issuer="cams",
        side_effect_mode="inline",
        audit_log_dir=str(tmp_path / "audit"),
        audit_log_signing_key=TEST_AUDIT_KEY,
        smtp_host="",
    )


@pytest.fixture()
def app(app_config, monkeypatch):
    """Flask app bound to a fresh in-memory database with the system roles."""
    monkeypatch.setenv("AUDIT_LOG_SIGNING_KEY", TEST_AUDIT_KEY)
    flask_app = create_app(app_config)
    flask_app.config["TESTING"] = True
    with flask_app.app_context():
        db.create_all()
        seed_roles(app_config)
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def roles(app) -> dict[str, Role]:
    """System roles by name (PlatformAdmin, Admin, User)."""
    return {role.name: role for role in db.session.scalars(select(Role)).all()}


@pytest.fixture()
def make_user(app):
    """Factory creating a committed user holding the given role names."""
    counter = {"n": 0}

    def _make(username: Optional[str] = None, *, roles: tuple[str, ...] = (), email: Optional[str] = None,
              is_active: bool = True) -> User:
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        user = User(
            username=username,
            email=email or f"{username.lower()}@example.com",
            password_hash=generate_password_hash("Str0ng!Pass"),
            is_active=is_active,
        )
        db.session.add(user)
        db.session.flush()
        for name in roles:
            role = db.session.scalars(select(Role).where(Role.name == name)).one()
            db.session.add(UserRole(user_id=user.id, role_id=role.id))
        db.session.commit()
        return user

    return _make


@pytest.fixture()
def make_role(app):
    def _make(name: str, *, is_active: bool = True, is_system: bool = False) -> Role:
        role = Role(name=name, description=f"{name} role", is_active=is_active, is_system=is_system)
        db.session.add(role)
        db.session.commit()
        return role

    return _make


@pytest.fixture()
def platform_admin(make_user) -> User:
    return make_user("root.admin", roles=("PlatformAdmin",))


@pytest.fixture()
def admin_ctx(platform_admin) -> RequestContext:
    return RequestContext(
        user_id=platform_admin.id,
        username=platform_admin.username,
        roles=frozenset({"PlatformAdmin"}),
        ip_address="127.0.0.1",
    )


def make_token(user_id, *, secret: str = TEST_JWT_SECRET, issuer: str = "cams", expires_in: int = 300,
               **extra) -> str:
    now = int(time.time())
    payload = {"sub": str(user_id), "iss": issuer, "iat": now, "exp": now + expires_in}
    payload.update(extra)
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(user: User, **kwargs) -> dict:
    return {"Authorization": f"Bearer {make_token(user.id, **kwargs)}"}


@pytest.fixture()
def admin_headers(platform_admin) -> dict:
    return auth_headers(platform_admin)
