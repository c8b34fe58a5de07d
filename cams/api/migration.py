"""Bulk migration endpoints (users, roles, applications)."""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from cams.api.decorators import get_request_context, require_roles
from cams.core import migration_service
from cams.core.exceptions import ValidationError
from cams.core.validators import sanitize_for_log

bp = Blueprint("migration", __name__)


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def _max_records() -> int:
    return current_app.config["APP_CONFIG"].migration_max_records


def _run(import_request: migration_service.ImportRequest):
    outcome = migration_service.run_import(import_request, get_request_context())
    return jsonify(outcome.to_dict()), 200


@bp.route("/validate", methods=["POST"])
@require_roles(config_attr="migration_roles")
def validate_migration():
    """Dry-run a bulk import: every check runs, nothing is written."""
    import_request = migration_service.parse_import_request(
        _json_body(), max_records=_max_records(), validate_only=True
    )
    return _run(import_request)


@bp.route("/import", methods=["POST"])
@require_roles(config_attr="migration_roles")
def import_migration():
    """Apply a bulk import (honours ``validateOnly``)."""
    import_request = migration_service.parse_import_request(_json_body(), max_records=_max_records())
    return _run(import_request)


@bp.route("/users", methods=["POST"])
@require_roles(config_attr="migration_roles")
def import_users():
    """Import users; welcome emails go to created users when enabled."""
    return _run(migration_service.parse_typed_request(_json_body(), "Users", max_records=_max_records()))


@bp.route("/roles", methods=["POST"])
@require_roles(config_attr="migration_roles")
def import_roles():
    return _run(migration_service.parse_typed_request(_json_body(), "Roles", max_records=_max_records()))


@bp.route("/applications", methods=["POST"])
@require_roles(config_attr="migration_roles")
def import_applications():
    return _run(migration_service.parse_typed_request(_json_body(), "Applications", max_records=_max_records()))


@bp.route("/template/<template_type>", methods=["GET"])
@require_roles(config_attr="migration_roles")
def get_template(template_type: str):
    """Example payload for the given migration type."""
    template = migration_service.get_template(template_type)
    ctx = get_request_context()
    current_app.logger.info(f"Migration template for {sanitize_for_log(template_type)} downloaded by {ctx.username}")
    return jsonify(template), 200
