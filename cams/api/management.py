"""User and role management endpoints (PlatformAdmin only)."""
from __future__ import annotations
from typing import Optional

from flask import Blueprint, jsonify, request

from cams.api.decorators import get_request_context, require_roles
from cams.core import role_assignment, role_service, user_service
from cams.core.exceptions import ValidationError
from cams.core.migration_service import field_value
from cams.core.validators import validate_id_list

bp = Blueprint("management", __name__)


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def _user_id(payload: dict) -> int:
    value = field_value(payload, "userId")
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("userId must be an integer")
    return value


# ─────────────────────────────────────────────────────────────────────────────
# User-centric operations
# ─────────────────────────────────────────────────────────────────────────────
@bp.route("/users/assign-roles", methods=["POST"])
@require_roles(config_attr="management_roles")
def assign_roles():
    """Replace a user's role set: ``{"userId": 1, "roleIds": [1, 2]}``."""
    payload = _json_body()
    user_id = _user_id(payload)
    role_ids = validate_id_list(field_value(payload, "roleIds"), "roleIds", allow_empty=True)
    result = role_assignment.assign_roles(user_id, role_ids, get_request_context())
    return jsonify(result), 200


@bp.route("/users/remove-roles", methods=["POST"])
@require_roles(config_attr="management_roles")
def remove_roles():
    """Remove specific roles from a user: ``{"userId": 1, "roleIds": [3]}``."""
    payload = _json_body()
    user_id = _user_id(payload)
    role_ids = validate_id_list(field_value(payload, "roleIds"), "roleIds")
    result = role_assignment.remove_roles(user_id, role_ids, get_request_context())
    return jsonify(result.to_dict()), 200


@bp.route("/users/<int:user_id>/roles", methods=["GET"])
@require_roles(config_attr="management_roles")
def user_roles(user_id: int):
    return jsonify(role_assignment.get_user_roles(user_id)), 200


@bp.route("/users/bulk/delete", methods=["POST"])
@require_roles(config_attr="management_roles")
def bulk_delete_users():
    """Deactivate several users: ``{"userIds": [...]}``."""
    user_ids = validate_id_list(field_value(_json_body(), "userIds"), "userIds")
    result = user_service.bulk_delete(user_ids, get_request_context())
    return jsonify(result.to_dict()), 200


@bp.route("/users/bulk/toggle", methods=["POST"])
@require_roles(config_attr="management_roles")
def bulk_toggle_users():
    """Set the active flag on several users: ``{"userIds": [...], "isActive": false}``."""
    payload = _json_body()
    user_ids = validate_id_list(field_value(payload, "userIds"), "userIds")
    is_active = field_value(payload, "isActive")
    if not isinstance(is_active, bool):
        raise ValidationError("isActive must be a boolean")
    result = user_service.bulk_toggle(user_ids, is_active, get_request_context())
    return jsonify(result.to_dict()), 200


# ─────────────────────────────────────────────────────────────────────────────
# Role lifecycle
# ─────────────────────────────────────────────────────────────────────────────
def _int_arg(name: str, default: Optional[int] = None) -> Optional[int]:
    raw = field_value(request.args, name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


@bp.route("/roles", methods=["GET"])
@require_roles(config_attr="management_roles")
def list_roles():
    """Paged role list: ``?pageNumber=1&pageSize=10&searchTerm=ops&sortBy=name&sortDirection=asc``."""
    body = role_service.list_roles(
        search=field_value(request.args, "searchTerm"),
        page=_int_arg("pageNumber", 1),
        page_size=_int_arg("pageSize", role_service.DEFAULT_PAGE_SIZE),
        sort_by=field_value(request.args, "sortBy"),
        sort_dir=field_value(request.args, "sortDirection"),
    )
    return jsonify(body), 200


@bp.route("/roles/all", methods=["GET"])
@require_roles(config_attr="management_roles")
def all_roles():
    return jsonify(role_service.get_all_roles()), 200


@bp.route("/roles/system", methods=["GET"])
@require_roles(config_attr="management_roles")
def system_roles():
    return jsonify(role_service.get_system_roles()), 200


@bp.route("/roles/check-name", methods=["GET"])
@require_roles(config_attr="management_roles")
def check_role_name():
    body = role_service.check_role_name(field_value(request.args, "name"), _int_arg("excludeId"))
    return jsonify(body), 200


@bp.route("/roles/<int:role_id>", methods=["GET"])
@require_roles(config_attr="management_roles")
def get_role(role_id: int):
    return jsonify(role_service.get_role(role_id)), 200


@bp.route("/roles", methods=["POST"])
@require_roles(config_attr="management_roles")
def create_role():
    """Create a role: ``{"name": "Auditor", "description": "...", "isActive": true}``."""
    return jsonify(role_service.create_role(_json_body(), get_request_context())), 201


@bp.route("/roles/<int:role_id>", methods=["PUT"])
@require_roles(config_attr="management_roles")
def update_role(role_id: int):
    return jsonify(role_service.update_role(role_id, _json_body(), get_request_context())), 200


@bp.route("/roles/<int:role_id>/toggle-status", methods=["PATCH"])
@require_roles(config_attr="management_roles")
def toggle_role_status(role_id: int):
    return jsonify(role_service.toggle_role_status(role_id, get_request_context())), 200


@bp.route("/roles/<int:role_id>", methods=["DELETE"])
@require_roles(config_attr="management_roles")
def delete_role(role_id: int):
    return jsonify(role_service.delete_role(role_id, get_request_context())), 200


# ─────────────────────────────────────────────────────────────────────────────
# Role-centric operations
# ─────────────────────────────────────────────────────────────────────────────
@bp.route("/roles/<int:role_id>/assign-users", methods=["POST"])
@require_roles(config_attr="management_roles")
def assign_users_to_role(role_id: int):
    user_ids = validate_id_list(field_value(_json_body(), "userIds"), "userIds")
    result = role_assignment.assign_users_to_role(role_id, user_ids, get_request_context())
    return jsonify(result.to_dict()), 200


@bp.route("/roles/<int:role_id>/remove-users", methods=["POST"])
@require_roles(config_attr="management_roles")
def remove_users_from_role(role_id: int):
    user_ids = validate_id_list(field_value(_json_body(), "userIds"), "userIds")
    result = role_assignment.remove_users_from_role(role_id, user_ids, get_request_context())
    return jsonify(result.to_dict()), 200


@bp.route("/roles/<int:role_id>/assign/<int:user_id>", methods=["POST"])
@require_roles(config_attr="management_roles")
def assign_role_to_user(role_id: int, user_id: int):
    return jsonify(role_assignment.assign_role_to_user(user_id, role_id, get_request_context())), 200


@bp.route("/roles/<int:role_id>/remove/<int:user_id>", methods=["DELETE"])
@require_roles(config_attr="management_roles")
def remove_role_from_user(role_id: int, user_id: int):
    return jsonify(role_assignment.remove_role_from_user(user_id, role_id, get_request_context())), 200


@bp.route("/roles/<int:role_id>/users", methods=["GET"])
@require_roles(config_attr="management_roles")
def role_users(role_id: int):
    return jsonify(role_assignment.get_role_users(role_id)), 200


@bp.route("/roles/bulk/delete", methods=["POST"])
@require_roles(config_attr="management_roles")
def bulk_delete_roles():
    """Delete several roles: ``{"roleIds": [...]}``."""
    role_ids = validate_id_list(field_value(_json_body(), "roleIds"), "roleIds")
    result = role_service.bulk_delete_roles(role_ids, get_request_context())
    return jsonify(result.to_dict()), 200
