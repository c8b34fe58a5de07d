"""Command-line helpers: seeding and file-based imports."""
import json

import pytest
from sqlalchemy import select

from cams.core.database import db
from cams.core.exceptions import ValidationError
from cams.core.models import Role, User
from scripts import migrate, seed


@pytest.fixture
def cli_app(app, mocker):
    mocker.patch("cams.flask_app.create_app", return_value=app)
    mocker.patch("cams.core.migration_service.send_welcome_email")
    return app


def test_seed_roles_is_idempotent(app, app_config, capsys):
    capsys.readouterr()
    seed.seed_roles(app_config)

    names = sorted(db.session.scalars(select(Role.name)).all())
    assert names == ["Admin", "PlatformAdmin", "User"]
    assert all(role.is_system for role in db.session.scalars(select(Role)))
    assert "[seed] Created role" not in capsys.readouterr().out


def test_seed_admin_grants_platform_admin(app, app_config):
    user = seed.seed_admin(app_config, "Root", "Root@Example.com", "Str0ng!Pass")
    again = seed.seed_admin(app_config, "root", "root@example.com", "Str0ng!Pass")

    assert again.id == user.id
    assert user.email == "root@example.com"
    assert db.session.get(User, user.id).active_role_names() == ["PlatformAdmin"]


def test_seed_requires_admin_credentials(app, app_config):
    with pytest.raises(ValueError):
        seed.seed(app_config, admin_username="root")


def test_operator_context_for_known_and_unknown_operator(platform_admin):
    known = migrate.operator_context("ROOT.ADMIN")
    assert known.user_id == platform_admin.id
    assert known.roles == frozenset({"PlatformAdmin"})

    unknown = migrate.operator_context("cron")
    assert unknown.user_id is None
    assert unknown.username == "cron"


def test_build_request_accepts_bare_list(tmp_path):
    path = tmp_path / "roles.json"
    path.write_text(json.dumps([{"name": "Auditor"}]))

    request = migrate.build_request(path, "roles", validate_only=True, overwrite=True, send_emails=False,
                                    max_records=10)

    assert request.migration_type == "Roles"
    assert request.records == [{"name": "Auditor"}]
    assert request.validate_only is True
    assert request.overwrite_existing is True


def test_build_request_rejects_bad_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{")
    with pytest.raises(ValidationError, match="Invalid JSON"):
        migrate.build_request(path, "users", validate_only=False, overwrite=False, send_emails=False,
                              max_records=10)


def test_migrate_main_imports_file(cli_app, platform_admin, tmp_path, capsys):
    path = tmp_path / "users.json"
    path.write_text(json.dumps({"users": [{"username": "alice", "email": "alice@example.com"}]}))

    code = migrate.main([str(path), "--type", "users", "--operator", "root.admin", "--no-emails"])

    assert code == 0
    outcome = json.loads(capsys.readouterr().out)
    assert outcome["createdRecords"] == 1
    assert db.session.scalars(select(User).where(User.username == "alice")).first() is not None


def test_migrate_main_reports_failures(cli_app, tmp_path, capsys):
    path = tmp_path / "users.json"
    path.write_text(json.dumps([{"username": "x", "email": "bad"}]))

    assert migrate.main([str(path), "--type", "users"]) == 1
    assert json.loads(capsys.readouterr().out)["failedRecords"] == 1


def test_migrate_main_missing_file(tmp_path, capsys):
    assert migrate.main([str(tmp_path / "nope.json"), "--type", "roles"]) == 2
    assert "File not found" in capsys.readouterr().err


def test_migrate_main_invalid_payload(cli_app, tmp_path, capsys):
    path = tmp_path / "roles.json"
    path.write_text("[]")

    assert migrate.main([str(path), "--type", "roles"]) == 2
    assert "No roles found" in capsys.readouterr().err
