"""Bulk user status operations (deactivate, toggle)."""
from __future__ import annotations
import logging

from cams.core.database import db, unit_of_work
from cams.core.exceptions import CamsError, InfrastructureError, NotFoundError, ValidationError
from cams.core.models import User
from cams.core.rbac import RequestContext
from cams.core.role_assignment import BulkOperationResult
from cams.core.side_effects import queue_audit_event

logger = logging.getLogger(__name__)


def _set_active(user_id: int, is_active: bool) -> None:
    with unit_of_work():
        user = db.session.get(User, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        user.is_active = is_active


def _apply(user_ids: list[int], is_active: bool, ctx: RequestContext, self_error: str,
           result: BulkOperationResult) -> None:
    for user_id in user_ids:
        try:
            if not is_active and user_id == ctx.user_id:
                raise ValidationError(self_error)
            _set_active(user_id, is_active)
            result.add_success(user_id)
        except InfrastructureError:
            raise
        except CamsError as exc:
            result.add_failure(user_id, exc.detail)


def bulk_delete(user_ids: list[int], ctx: RequestContext) -> BulkOperationResult:
    """Deactivate users. The caller's own account is never touched."""
    result = BulkOperationResult(total_requested=len(user_ids))
    try:
        _apply(user_ids, False, ctx, "You cannot delete your own account", result)
    except Exception:
        result.aborted = True
        raise
    finally:
        queue_audit_event(
            "user_bulk_delete",
            ctx.username,
            target="users",
            details=result.audit_details("deleted"),
            success=result.success,
            ip_address=ctx.ip_address,
        )
    result.message = f"Deleted {result.successful_count} of {result.total_requested} user(s)"
    logger.info("Bulk delete by %s: %d ok, %d failed", ctx.username, result.successful_count, result.failed_count)
    return result


def bulk_toggle(user_ids: list[int], is_active: bool, ctx: RequestContext) -> BulkOperationResult:
    """Set ``is_active`` on several users; callers cannot deactivate themselves."""
    result = BulkOperationResult(total_requested=len(user_ids))
    try:
        _apply(user_ids, is_active, ctx, "You cannot deactivate your own account", result)
    except Exception:
        result.aborted = True
        raise
    finally:
        queue_audit_event(
            "user_bulk_toggle",
            ctx.username,
            target="users",
            details=result.audit_details("updated", is_active=is_active),
            success=result.success,
            ip_address=ctx.ip_address,
        )
    verb = "Activated" if is_active else "Deactivated"
    result.message = f"{verb} {result.successful_count} of {result.total_requested} user(s)"
    return result
