"""Role lifecycle: paging, create/update, toggle, delete and name checks."""
import pytest
from sqlalchemy import select

from cams.core import role_service
from cams.core.database import db
from cams.core.exceptions import ConflictError, NotFoundError, ValidationError
from cams.core.models import Role


# ─────────────────────────────────────────────────────────────────────────────
# Queries
# ─────────────────────────────────────────────────────────────────────────────
def test_list_roles_pages_in_name_order(make_role, roles):
    for name in ("Auditor", "Billing", "Support"):
        make_role(name)

    first = role_service.list_roles(page=1, page_size=4)
    second = role_service.list_roles(page=2, page_size=4)

    assert [r["name"] for r in first["data"]] == ["Admin", "Auditor", "Billing", "PlatformAdmin"]
    assert [r["name"] for r in second["data"]] == ["Support", "User"]
    assert first["pagination"] == {
        "currentPage": 1,
        "perPage": 4,
        "totalItems": 6,
        "totalPages": 2,
        "hasNext": True,
        "hasPrevious": False,
    }
    assert second["pagination"]["hasNext"] is False


def test_list_roles_search_and_sort(make_role, roles):
    make_role("Auditor")
    make_role("Support")
    role = db.session.scalars(select(Role).where(Role.name == "Support")).one()
    role.description = "Helps auditors"
    db.session.commit()

    body = role_service.list_roles(search="AUDIT", sort_by="name", sort_dir="desc")

    assert [r["name"] for r in body["data"]] == ["Support", "Auditor"]
    assert body["pagination"]["totalItems"] == 2


def test_list_roles_unknown_sort_falls_back_to_name(roles):
    body = role_service.list_roles(sort_by="colour")
    assert [r["name"] for r in body["data"]] == ["Admin", "PlatformAdmin", "User"]


@pytest.mark.parametrize("kwargs", [{"page": 0}, {"page_size": 0}, {"page_size": 101}])
def test_list_roles_rejects_bad_paging(app, kwargs):
    with pytest.raises(ValidationError):
        role_service.list_roles(**kwargs)


def test_get_role_counts_active_users(make_user, roles):
    make_user("alice", roles=("Admin",))
    make_user("bob", roles=("Admin",))

    body = role_service.get_role(roles["Admin"].id)

    assert body["name"] == "Admin"
    assert body["userCount"] == 2
    assert body["isSystem"] is True
    assert body["createdAt"]


def test_get_role_unknown(app):
    with pytest.raises(NotFoundError, match="Role 404 not found"):
        role_service.get_role(404)


def test_system_and_all_roles(make_role, roles):
    make_role("Auditor")

    assert [r["name"] for r in role_service.get_system_roles()] == ["Admin", "PlatformAdmin", "User"]
    assert [r["name"] for r in role_service.get_all_roles()] == ["Admin", "Auditor", "PlatformAdmin", "User"]


def test_check_role_name(roles):
    taken = role_service.check_role_name("admin")
    assert taken["isAvailable"] is False
    assert taken["message"] == "Role name is already taken"

    assert role_service.check_role_name("Admin", exclude_id=roles["Admin"].id)["isAvailable"] is True
    assert role_service.check_role_name("Auditor")["message"] == "Role name is available"

    with pytest.raises(ValidationError):
        role_service.check_role_name("  ")


# ─────────────────────────────────────────────────────────────────────────────
# Writes
# ─────────────────────────────────────────────────────────────────────────────
def test_create_role(admin_ctx, mocker):
    queued = mocker.patch("cams.core.role_service.queue_audit_event")

    body = role_service.create_role({"Name": " Auditor ", "description": "Reads logs"}, admin_ctx)

    assert body["name"] == "Auditor"
    assert body["isSystem"] is False
    assert body["isActive"] is True
    assert body["userCount"] == 0
    assert queued.call_args.args == ("role_create", "root.admin")
    assert queued.call_args.kwargs["target"] == f"role:{body['id']}"


def test_create_role_rejects_duplicate_and_bad_fields(admin_ctx, roles):
    with pytest.raises(ConflictError, match="Role with name 'admin' already exists"):
        role_service.create_role({"name": "admin"}, admin_ctx)
    with pytest.raises(ValidationError, match="between 2 and 50"):
        role_service.create_role({"name": "A"}, admin_ctx)
    with pytest.raises(ValidationError, match="cannot exceed 200"):
        role_service.create_role({"name": "Auditor", "description": "x" * 201}, admin_ctx)
    with pytest.raises(ValidationError, match="isActive must be a boolean"):
        role_service.create_role({"name": "Auditor", "isActive": "no"}, admin_ctx)


def test_update_role(make_role, admin_ctx):
    role = make_role("Auditor")

    body = role_service.update_role(role.id, {"name": "Auditors", "description": "Team", "isActive": False}, admin_ctx)

    assert (body["name"], body["description"], body["isActive"]) == ("Auditors", "Team", False)


def test_update_role_name_clash(make_role, admin_ctx):
    role = make_role("Auditor")
    make_role("Support")

    with pytest.raises(ConflictError, match="Role with name 'support' already exists"):
        role_service.update_role(role.id, {"name": "support"}, admin_ctx)
    # Same name under different casing is the role itself
    assert role_service.update_role(role.id, {"name": "AUDITOR"}, admin_ctx)["name"] == "AUDITOR"


def test_update_system_role_only_description(roles, admin_ctx):
    admin_id = roles["Admin"].id

    with pytest.raises(ValidationError, match="cannot be renamed"):
        role_service.update_role(admin_id, {"name": "Admins"}, admin_ctx)
    with pytest.raises(ValidationError, match="cannot be deactivated"):
        role_service.update_role(admin_id, {"name": "Admin", "isActive": False}, admin_ctx)

    body = role_service.update_role(admin_id, {"name": "Admin", "description": "Operators"}, admin_ctx)
    assert body["description"] == "Operators"


def test_update_unknown_role(app, admin_ctx):
    with pytest.raises(NotFoundError):
        role_service.update_role(999, {"name": "Ghost"}, admin_ctx)


def test_toggle_role_status(make_role, roles, admin_ctx):
    role = make_role("Auditor")

    assert role_service.toggle_role_status(role.id, admin_ctx)["isActive"] is False
    body = role_service.toggle_role_status(role.id, admin_ctx)
    assert body == {"message": "Role status toggled successfully", "roleId": role.id, "isActive": True}

    with pytest.raises(ValidationError, match="System role 'User' cannot be deactivated"):
        role_service.toggle_role_status(roles["User"].id, admin_ctx)


def test_delete_role(make_role, make_user, roles, admin_ctx, mocker):
    queued = mocker.patch("cams.core.role_service.queue_audit_event")
    unused = make_role("Unused")
    in_use = make_role("InUse")
    make_user("alice", roles=("InUse",))
    unused_id = unused.id

    assert role_service.delete_role(unused_id, admin_ctx)["message"] == "Role deleted successfully"
    assert db.session.get(Role, unused_id) is None
    assert queued.call_args.kwargs["details"] == {"name": "Unused"}

    with pytest.raises(ValidationError, match="is assigned to 1 user"):
        role_service.delete_role(in_use.id, admin_ctx)
    with pytest.raises(ValidationError, match="cannot be deleted"):
        role_service.delete_role(roles["PlatformAdmin"].id, admin_ctx)
    with pytest.raises(NotFoundError):
        role_service.delete_role(unused_id, admin_ctx)
