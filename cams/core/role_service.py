"""Role lifecycle: listing, create/update, activation toggle and deletion.

Role names are unique case-insensitively. System roles (seeded at startup and
referenced by configuration) keep their name and stay active; they can never
be deleted.
"""
from __future__ import annotations
import logging
import math
from typing import Any, Optional

from sqlalchemy import delete, func, or_, select

from cams.core.database import db, unit_of_work
from cams.core.exceptions import CamsError, ConflictError, InfrastructureError, NotFoundError, ValidationError
from cams.core.migration_service import field_value
from cams.core.models import Role, UserRole
from cams.core.rbac import RequestContext
from cams.core.role_assignment import BulkOperationResult
from cams.core.side_effects import queue_audit_event
from cams.core.validators import sanitize_for_log, validate_bool, validate_text

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

SORT_COLUMNS = {
    "name": Role.name,
    "description": Role.description,
    "createdat": Role.created_at,
    "created": Role.created_at,
    "updatedat": Role.updated_at,
    "updated": Role.updated_at,
    "issystem": Role.is_system,
    "system": Role.is_system,
    "isactive": Role.is_active,
    "active": Role.is_active,
}


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────
def _load_role(role_id: int) -> Role:
    role = db.session.get(Role, role_id)
    if role is None:
        raise NotFoundError(f"Role {role_id} not found")
    return role


def _active_user_count(role_id: int) -> int:
    return db.session.scalar(
        select(func.count(UserRole.id)).where(UserRole.role_id == role_id, UserRole.is_active.is_(True))
    )


def _role_dict(role: Role) -> dict:
    item = role.to_dict()
    item["userCount"] = _active_user_count(role.id)
    item["createdAt"] = role.created_at.isoformat() if role.created_at else None
    item["updatedAt"] = role.updated_at.isoformat() if role.updated_at else None
    return item


def _name_taken(name: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(Role.id).where(func.lower(Role.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(Role.id != exclude_id)
    return db.session.scalars(stmt).first() is not None


def _validate_payload(payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return {
        "name": validate_text(field_value(payload, "name"), "Role name", min_length=2, max_length=50, required=True),
        "description": validate_text(field_value(payload, "description"), "Description", max_length=200),
        "is_active": validate_bool(field_value(payload, "isActive"), "isActive"),
    }


# ─────────────────────────────────────────────────────────────────────────────
# Queries
# ─────────────────────────────────────────────────────────────────────────────
def list_roles(
    search: Optional[str] = None,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    sort_by: Optional[str] = None,
    sort_dir: Optional[str] = None,
) -> dict:
    """One page of roles, optionally filtered by a name/description search term.

    Unknown sort keys fall back to name ascending.
    """
    if page < 1:
        raise ValidationError("pageNumber must be at least 1")
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise ValidationError(f"pageSize must be between 1 and {MAX_PAGE_SIZE}")

    stmt = select(Role)
    if search and search.strip():
        term = f"%{search.strip().lower()}%"
        stmt = stmt.where(or_(func.lower(Role.name).like(term), func.lower(Role.description).like(term)))

    total = db.session.scalar(select(func.count()).select_from(stmt.subquery()))

    column = SORT_COLUMNS.get((sort_by or "name").lower(), Role.name)
    order = column.desc() if (sort_dir or "asc").lower() == "desc" else column.asc()
    roles = db.session.scalars(
        stmt.order_by(order, Role.id).offset((page - 1) * page_size).limit(page_size)
    ).all()

    total_pages = math.ceil(total / page_size)
    return {
        "data": [_role_dict(role) for role in roles],
        "pagination": {
            "currentPage": page,
            "perPage": page_size,
            "totalItems": total,
            "totalPages": total_pages,
            "hasNext": page < total_pages,
            "hasPrevious": page > 1,
        },
    }


def get_all_roles() -> list[dict]:
    return [_role_dict(role) for role in db.session.scalars(select(Role).order_by(Role.name))]


def get_system_roles() -> list[dict]:
    roles = db.session.scalars(select(Role).where(Role.is_system.is_(True)).order_by(Role.name))
    return [_role_dict(role) for role in roles]


def get_role(role_id: int) -> dict:
    return _role_dict(_load_role(role_id))


def check_role_name(name: Any, exclude_id: Optional[int] = None) -> dict:
    name = validate_text(name, "Role name", max_length=50, required=True)
    available = not _name_taken(name, exclude_id)
    return {
        "name": name,
        "isAvailable": available,
        "message": "Role name is available" if available else "Role name is already taken",
    }


# ─────────────────────────────────────────────────────────────────────────────
# Writes
# ─────────────────────────────────────────────────────────────────────────────
def create_role(payload: Any, ctx: RequestContext) -> dict:
    """Create a non-system role.

    Raises:
        ValidationError: If a field is malformed
        ConflictError: If another role already uses the name
    """
    values = _validate_payload(payload)
    with unit_of_work():
        if _name_taken(values["name"]):
            raise ConflictError(f"Role with name '{values['name']}' already exists")
        role = Role(is_system=False, **values)
        db.session.add(role)
        db.session.flush()
        body = _role_dict(role)

    logger.info("Role %s created by %s", sanitize_for_log(body["name"]), sanitize_for_log(ctx.username))
    queue_audit_event(
        "role_create",
        ctx.username,
        target=f"role:{body['id']}",
        details={"name": body["name"], "is_active": body["isActive"]},
        ip_address=ctx.ip_address,
    )
    return body


def update_role(role_id: int, payload: Any, ctx: RequestContext) -> dict:
    """Replace name, description and active flag of a role.

    System roles accept description changes only.
    """
    values = _validate_payload(payload)
    with unit_of_work():
        role = _load_role(role_id)
        if _name_taken(values["name"], exclude_id=role_id):
            raise ConflictError(f"Role with name '{values['name']}' already exists")
        if role.is_system:
            if values["name"] != role.name:
                raise ValidationError(f"System role '{role.name}' cannot be renamed")
            if not values["is_active"]:
                raise ValidationError(f"System role '{role.name}' cannot be deactivated")
        previous = role.name
        role.name = values["name"]
        role.description = values["description"]
        role.is_active = values["is_active"]
        db.session.flush()
        body = _role_dict(role)

    queue_audit_event(
        "role_update",
        ctx.username,
        target=f"role:{role_id}",
        details={"previous_name": previous, "name": body["name"], "is_active": body["isActive"]},
        ip_address=ctx.ip_address,
    )
    return body


def toggle_role_status(role_id: int, ctx: RequestContext) -> dict:
    with unit_of_work():
        role = _load_role(role_id)
        if role.is_system and role.is_active:
            raise ValidationError(f"System role '{role.name}' cannot be deactivated")
        role.is_active = not role.is_active
        name, is_active = role.name, role.is_active

    logger.info("Role %s is now %s", sanitize_for_log(name), "active" if is_active else "inactive")
    queue_audit_event(
        "role_toggle",
        ctx.username,
        target=f"role:{role_id}",
        details={"is_active": is_active},
        ip_address=ctx.ip_address,
    )
    return {"message": "Role status toggled successfully", "roleId": role_id, "isActive": is_active}


def _delete_role(role_id: int) -> str:
    with unit_of_work():
        role = _load_role(role_id)
        if role.is_system:
            raise ValidationError(f"System role '{role.name}' cannot be deleted")

        active = _active_user_count(role_id)
        if active:
            raise ValidationError(f"Role '{role.name}' is assigned to {active} user(s)")

        # Purge leftover inactive assignment rows before the role itself
        name = role.name
        db.session.execute(delete(UserRole).where(UserRole.role_id == role_id))
        db.session.delete(role)
    return name


def delete_role(role_id: int, ctx: RequestContext) -> dict:
    """Hard-delete one role.

    Raises:
        NotFoundError: If the role does not exist
        ValidationError: If it is a system role or still has active assignments
    """
    name = _delete_role(role_id)
    queue_audit_event(
        "role_delete",
        ctx.username,
        target=f"role:{role_id}",
        details={"name": name},
        ip_address=ctx.ip_address,
    )
    return {"message": "Role deleted successfully", "roleId": role_id}


def bulk_delete_roles(role_ids: list[int], ctx: RequestContext) -> BulkOperationResult:
    result = BulkOperationResult(total_requested=len(role_ids))
    try:
        for role_id in role_ids:
            try:
                _delete_role(role_id)
                result.add_success(role_id)
            except InfrastructureError:
                raise
            except CamsError as exc:
                result.add_failure(role_id, exc.detail)
    except Exception:
        result.aborted = True
        raise
    finally:
        queue_audit_event(
            "role_bulk_delete",
            ctx.username,
            target="roles",
            details=result.audit_details("deleted"),
            success=result.success,
            ip_address=ctx.ip_address,
        )

    result.message = f"Deleted {result.successful_count} of {result.total_requested} role(s)"
    logger.info("Bulk role delete by %s: %d ok, %d failed", ctx.username, result.successful_count, result.failed_count)
    return result
