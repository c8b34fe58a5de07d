"""Role assignment reconciler.

Two families of operations:

- full replace (``assign_roles``): the user's active role set becomes exactly
  the target set, in one transaction;
- targeted pairs (``assign_role_to_user``, ``remove_role_from_user`` and their
  bulk variants): every (user, role) pair is applied in its own transaction and
  failures are reported per pair.

Removal always hard-deletes the assignment row. A leftover inactive row for a
pair is reactivated when that pair is assigned again.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from sqlalchemy import select

from cams.core.database import db, unit_of_work, utcnow
from cams.core.exceptions import CamsError, InfrastructureError, NotFoundError, ValidationError
from cams.core.models import Role, User, UserRole
from cams.core.rbac import RequestContext
from cams.core.side_effects import queue_audit_event

logger = logging.getLogger(__name__)


@dataclass
class BulkOperationResult:
    """Aggregate outcome of a per-item bulk operation."""
    total_requested: int
    successful: list[int] = field(default_factory=list)
    failed: list[dict] = field(default_factory=list)
    message: str = ""
    aborted: bool = False

    @property
    def successful_count(self) -> int:
        return len(self.successful)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def success(self) -> bool:
        return self.failed_count == 0 and not self.aborted

    def add_success(self, item_id: int) -> None:
        self.successful.append(item_id)

    def add_failure(self, item_id: int, error: str) -> None:
        self.failed.append({"id": item_id, "error": error})

    def audit_details(self, done_key: str, **extra) -> dict:
        """Audit payload; ids processed before an abort are still reported."""
        details = {done_key: list(self.successful), "failed": list(self.failed), **extra}
        if self.aborted:
            details["aborted"] = True
        return details

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "totalRequested": self.total_requested,
            "successfulCount": self.successful_count,
            "failedCount": self.failed_count,
            "successful": list(self.successful),
            "failed": list(self.failed),
            "success": self.success,
        }


# ─────────────────────────────────────────────────────────────────────────────
# Session-level helpers (no commit)
# ─────────────────────────────────────────────────────────────────────────────
def _assignment(user_id: int, role_id: int) -> Optional[UserRole]:
    return db.session.scalars(
        select(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == role_id)
    ).first()


def _activate(user_id: int, role_id: int, assigned_by: Optional[int]) -> bool:
    """Make the pair active. Returns False when it already was."""
    row = _assignment(user_id, role_id)
    if row is not None and row.is_active:
        return False
    if row is not None:
        row.is_active = True
        row.assigned_at = utcnow()
        row.assigned_by = assigned_by
    else:
        db.session.add(UserRole(user_id=user_id, role_id=role_id, assigned_by=assigned_by))
    return True


def sync_role_set(user: User, target_role_ids: Iterable[int], *, assigned_by: Optional[int]) -> tuple[list[int], list[int]]:
    """Diff the user's active assignments against ``target_role_ids`` and apply it.

    Runs in the caller's transaction. Returns ``(added, removed)`` role ids.
    """
    target = set(target_role_ids)
    active_rows = db.session.scalars(
        select(UserRole).where(UserRole.user_id == user.id, UserRole.is_active.is_(True))
    ).all()
    current = {row.role_id for row in active_rows}

    to_remove = current - target
    to_add = target - current

    for row in active_rows:
        if row.role_id in to_remove:
            db.session.delete(row)
    for role_id in sorted(to_add):
        _activate(user.id, role_id, assigned_by)
    db.session.flush()
    return sorted(to_add), sorted(to_remove)


def _get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


def _get_role(role_id: int) -> Role:
    role = db.session.get(Role, role_id)
    if role is None:
        raise NotFoundError(f"Role {role_id} not found")
    return role


# ─────────────────────────────────────────────────────────────────────────────
# Full replace
# ─────────────────────────────────────────────────────────────────────────────
def assign_roles(user_id: int, role_ids: list[int], ctx: RequestContext) -> dict:
    """Replace the user's active role set with ``role_ids`` (all-or-nothing).

    Raises:
        NotFoundError: If the user does not exist
        ValidationError: If any role id is unknown or inactive
    """
    target = set(role_ids)
    with unit_of_work():
        user = _get_user(user_id)
        roles = db.session.scalars(select(Role).where(Role.id.in_(target))).all() if target else []
        found = {role.id: role for role in roles}

        missing = sorted(target - set(found))
        if missing:
            raise ValidationError(f"Role(s) not found: {', '.join(str(r) for r in missing)}")
        inactive = sorted(role.name for role in roles if not role.is_active)
        if inactive:
            raise ValidationError(f"Inactive role(s) cannot be assigned: {', '.join(inactive)}")

        added, removed = sync_role_set(user, target, assigned_by=ctx.user_id)
        username = user.username

    logger.info("Role set for user %s replaced: added=%s removed=%s", user_id, added, removed)
    queue_audit_event(
        "user_roles_replace",
        ctx.username,
        target=f"user:{user_id}",
        details={"username": username, "role_ids": sorted(target), "added": added, "removed": removed},
        ip_address=ctx.ip_address,
    )
    return {
        "message": f"Roles updated for user {username}",
        "userId": user_id,
        "roleIds": sorted(target),
        "added": added,
        "removed": removed,
    }


# ─────────────────────────────────────────────────────────────────────────────
# Targeted pairs
# ─────────────────────────────────────────────────────────────────────────────
def _assign_pair(user_id: int, role_id: int, assigned_by: Optional[int]) -> bool:
    with unit_of_work():
        _get_user(user_id)
        role = _get_role(role_id)
        if not role.is_active:
            raise ValidationError(f"Role '{role.name}' is inactive")
        return _activate(user_id, role_id, assigned_by)


def _remove_pair(user_id: int, role_id: int) -> None:
    with unit_of_work():
        row = db.session.scalars(
            select(UserRole).where(
                UserRole.user_id == user_id,
                UserRole.role_id == role_id,
                UserRole.is_active.is_(True),
            )
        ).first()
        if row is None:
            raise NotFoundError(f"Role {role_id} is not assigned to user {user_id}")
        db.session.delete(row)


def assign_role_to_user(user_id: int, role_id: int, ctx: RequestContext) -> dict:
    """Assign one role to one user. Idempotent."""
    changed = _assign_pair(user_id, role_id, ctx.user_id)
    queue_audit_event(
        "role_assign",
        ctx.username,
        target=f"user:{user_id}",
        details={"role_id": role_id, "changed": changed},
        ip_address=ctx.ip_address,
    )
    message = "Role assigned successfully" if changed else "Role already assigned"
    return {"message": message, "userId": user_id, "roleId": role_id, "changed": changed}


def remove_role_from_user(user_id: int, role_id: int, ctx: RequestContext) -> dict:
    """Remove one role from one user.

    Raises:
        NotFoundError: If the pair has no active assignment
    """
    _remove_pair(user_id, role_id)
    queue_audit_event(
        "role_remove",
        ctx.username,
        target=f"user:{user_id}",
        details={"role_id": role_id},
        ip_address=ctx.ip_address,
    )
    return {"message": "Role removed successfully", "userId": user_id, "roleId": role_id}


def _run_pairs(pairs: list[tuple[int, int, int]], operation, result: BulkOperationResult) -> None:
    """Apply ``operation(user_id, role_id)`` per pair; ``pairs`` holds (item_id, user_id, role_id)."""
    for item_id, user_id, role_id in pairs:
        try:
            operation(user_id, role_id)
            result.add_success(item_id)
        except InfrastructureError:
            raise
        except CamsError as exc:
            result.add_failure(item_id, exc.detail)


def remove_roles(user_id: int, role_ids: list[int], ctx: RequestContext) -> BulkOperationResult:
    """Remove several roles from one user, each pair independently."""
    with unit_of_work():
        username = _get_user(user_id).username

    result = BulkOperationResult(total_requested=len(role_ids))
    try:
        _run_pairs([(role_id, user_id, role_id) for role_id in role_ids], _remove_pair, result)
    except Exception:
        result.aborted = True
        raise
    finally:
        queue_audit_event(
            "role_remove",
            ctx.username,
            target=f"user:{user_id}",
            details=result.audit_details("removed"),
            success=result.success,
            ip_address=ctx.ip_address,
        )
    result.message = f"Removed {result.successful_count} of {result.total_requested} role(s) from user {username}"
    return result


def assign_users_to_role(role_id: int, user_ids: list[int], ctx: RequestContext) -> BulkOperationResult:
    """Assign one role to several users, each pair independently.

    Raises:
        NotFoundError: If the role does not exist or is inactive
    """
    with unit_of_work():
        role = _get_role(role_id)
        if not role.is_active:
            raise NotFoundError(f"Role {role_id} not found or inactive")
        role_name = role.name

    result = BulkOperationResult(total_requested=len(user_ids))
    try:
        _run_pairs(
            [(user_id, user_id, role_id) for user_id in user_ids],
            lambda uid, rid: _assign_pair(uid, rid, ctx.user_id),
            result,
        )
    except Exception:
        result.aborted = True
        raise
    finally:
        queue_audit_event(
            "role_assign",
            ctx.username,
            target=f"role:{role_id}",
            details=result.audit_details("assigned"),
            success=result.success,
            ip_address=ctx.ip_address,
        )
    result.message = f"Assigned role {role_name} to {result.successful_count} of {result.total_requested} user(s)"
    return result


def remove_users_from_role(role_id: int, user_ids: list[int], ctx: RequestContext) -> BulkOperationResult:
    """Remove one role from several users, each pair independently."""
    with unit_of_work():
        role_name = _get_role(role_id).name

    result = BulkOperationResult(total_requested=len(user_ids))
    try:
        _run_pairs([(user_id, user_id, role_id) for user_id in user_ids], _remove_pair, result)
    except Exception:
        result.aborted = True
        raise
    finally:
        queue_audit_event(
            "role_remove",
            ctx.username,
            target=f"role:{role_id}",
            details=result.audit_details("removed"),
            success=result.success,
            ip_address=ctx.ip_address,
        )
    result.message = f"Removed role {role_name} from {result.successful_count} of {result.total_requested} user(s)"
    return result


# ─────────────────────────────────────────────────────────────────────────────
# Queries
# ─────────────────────────────────────────────────────────────────────────────
def get_user_roles(user_id: int) -> dict:
    user = _get_user(user_id)
    rows = db.session.execute(
        select(Role, UserRole)
        .join(UserRole, UserRole.role_id == Role.id)
        .where(UserRole.user_id == user_id, UserRole.is_active.is_(True))
        .order_by(Role.name)
    ).all()
    roles = []
    for role, assignment in rows:
        item = role.to_dict()
        item["assignedAt"] = assignment.assigned_at.isoformat() if assignment.assigned_at else None
        item["assignedBy"] = assignment.assigned_by
        roles.append(item)
    return {"userId": user.id, "username": user.username, "roles": roles}


def get_role_users(role_id: int) -> dict:
    role = _get_role(role_id)
    rows = db.session.execute(
        select(User, UserRole)
        .join(UserRole, UserRole.user_id == User.id)
        .where(UserRole.role_id == role_id, UserRole.is_active.is_(True))
        .order_by(User.username)
    ).all()
    users = []
    for user, assignment in rows:
        item = user.to_dict()
        item["assignedAt"] = assignment.assigned_at.isoformat() if assignment.assigned_at else None
        users.append(item)
    return {"roleId": role.id, "roleName": role.name, "users": users}
