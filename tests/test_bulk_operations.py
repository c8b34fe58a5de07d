"""Bulk user deactivation/toggle and bulk role deletion."""
import pytest
from sqlalchemy import func, select

from cams.core import role_service
from cams.core.database import db
from cams.core.exceptions import InfrastructureError
from cams.core.models import Role, User, UserRole
from cams.core.role_service import bulk_delete_roles
from cams.core.user_service import bulk_delete, bulk_toggle


def test_bulk_delete_skips_caller(make_user, admin_ctx, platform_admin):
    alice = make_user("alice")
    bob = make_user("bob")

    result = bulk_delete([alice.id, platform_admin.id, bob.id], admin_ctx)

    assert result.successful == [alice.id, bob.id]
    assert result.failed == [{"id": platform_admin.id, "error": "You cannot delete your own account"}]
    assert result.message == "Deleted 2 of 3 user(s)"
    assert db.session.get(User, platform_admin.id).is_active is True
    assert db.session.get(User, alice.id).is_active is False
    assert db.session.get(User, bob.id).is_active is False


def test_bulk_delete_unknown_user(app, admin_ctx):
    result = bulk_delete([12345], admin_ctx)
    assert result.failed == [{"id": 12345, "error": "User 12345 not found"}]


def test_bulk_delete_audited(make_user, admin_ctx, mocker):
    queued = mocker.patch("cams.core.user_service.queue_audit_event")
    alice = make_user("alice")

    bulk_delete([alice.id], admin_ctx)

    assert queued.call_args.args == ("user_bulk_delete", "root.admin")
    assert queued.call_args.kwargs["details"]["deleted"] == [alice.id]


def test_bulk_toggle_activates_and_deactivates(make_user, admin_ctx, platform_admin):
    alice = make_user("alice", is_active=False)

    result = bulk_toggle([alice.id], True, admin_ctx)
    assert result.message == "Activated 1 of 1 user(s)"
    assert db.session.get(User, alice.id).is_active is True

    result = bulk_toggle([alice.id, platform_admin.id], False, admin_ctx)
    assert result.successful == [alice.id]
    assert result.failed[0]["error"] == "You cannot deactivate your own account"
    assert db.session.get(User, platform_admin.id).is_active is True


def test_bulk_toggle_may_reactivate_caller(admin_ctx, platform_admin):
    result = bulk_toggle([platform_admin.id], True, admin_ctx)
    assert result.success


def test_bulk_delete_roles_rules(make_user, make_role, roles, admin_ctx):
    unused = make_role("Unused")
    in_use = make_role("InUse")
    stale = make_role("Stale")
    alice = make_user("alice", roles=("InUse",))
    db.session.add(UserRole(user_id=alice.id, role_id=stale.id, is_active=False))
    db.session.commit()
    unused_id, in_use_id, stale_id = unused.id, in_use.id, stale.id

    result = bulk_delete_roles([unused_id, roles["Admin"].id, in_use_id, stale_id, 999], admin_ctx)

    assert result.successful == [unused_id, stale_id]
    errors = {item["id"]: item["error"] for item in result.failed}
    assert errors[roles["Admin"].id] == "System role 'Admin' cannot be deleted"
    assert errors[in_use_id] == "Role 'InUse' is assigned to 1 user(s)"
    assert errors[999] == "Role 999 not found"

    assert db.session.get(Role, unused_id) is None
    assert db.session.get(Role, stale_id) is None
    assert db.session.get(Role, in_use_id) is not None
    assert db.session.scalar(select(func.count(UserRole.id)).where(UserRole.role_id == stale_id)) == 0


def test_store_outage_mid_bulk_delete_is_audited(make_user, admin_ctx, mocker):
    queued = mocker.patch("cams.core.user_service.queue_audit_event")
    alice = make_user("alice")
    bob = make_user("bob")
    mocker.patch(
        "cams.core.user_service._set_active",
        side_effect=[None, InfrastructureError("Database is unavailable")],
    )

    with pytest.raises(InfrastructureError):
        bulk_delete([alice.id, bob.id], admin_ctx)

    args, kwargs = queued.call_args
    assert args == ("user_bulk_delete", "root.admin")
    assert kwargs["success"] is False
    assert kwargs["details"]["aborted"] is True
    assert kwargs["details"]["deleted"] == [alice.id]


def test_store_outage_mid_bulk_toggle_is_audited(make_user, admin_ctx, mocker):
    queued = mocker.patch("cams.core.user_service.queue_audit_event")
    alice = make_user("alice")
    mocker.patch("cams.core.user_service._set_active", side_effect=InfrastructureError("Database is unavailable"))

    with pytest.raises(InfrastructureError):
        bulk_toggle([alice.id], False, admin_ctx)

    details = queued.call_args.kwargs["details"]
    assert details["aborted"] is True
    assert details["is_active"] is False
    assert details["updated"] == []


def test_store_outage_mid_role_delete_is_audited(make_role, admin_ctx, mocker):
    queued = mocker.patch("cams.core.role_service.queue_audit_event")
    first = make_role("First")
    second = make_role("Second")
    first_id, second_id = first.id, second.id
    real_delete = role_service._delete_role

    def delete_role(role_id):
        if role_id == second_id:
            raise InfrastructureError("Database is unavailable")
        return real_delete(role_id)

    mocker.patch("cams.core.role_service._delete_role", side_effect=delete_role)

    with pytest.raises(InfrastructureError):
        bulk_delete_roles([first_id, second_id], admin_ctx)

    kwargs = queued.call_args.kwargs
    assert kwargs["success"] is False
    assert kwargs["details"] == {"deleted": [first_id], "failed": [], "aborted": True}
    assert db.session.get(Role, first_id) is None
