"""Bulk import of users, roles and applications.

Each batch is processed in input order. Every record is validated (shape,
references, uniqueness against the store and against earlier records of the
same batch) and, unless ``validate_only`` is set, persisted in its own unit of
work. Per-record failures are collected and the batch continues; an
infrastructure failure aborts the remaining records.

Usage (inside an application context):
    request = parse_import_request(payload, max_records=cfg.migration_max_records)
    outcome = run_import(request, ctx)
    outcome.to_dict()
"""
from __future__ import annotations
import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from flask import current_app
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from werkzeug.security import generate_password_hash

from cams.config import AppConfig
from cams.core import role_assignment
from cams.core.database import db, unit_of_work
from cams.core.exceptions import (
    AuthorizationError,
    CamsError,
    ConflictError,
    InfrastructureError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from cams.core.mailer import send_welcome_email
from cams.core.models import Application, Role, User, UserRole
from cams.core.rbac import RequestContext, is_authorized
from cams.core.side_effects import get_dispatcher, queue_audit_event
from cams.core.validators import (
    generate_temp_password,
    sanitize_for_log,
    validate_bool,
    validate_email,
    validate_name,
    validate_password,
    validate_phone,
    validate_text,
    validate_username,
)

logger = logging.getLogger(__name__)

MIGRATION_TYPES = {
    "users": "Users",
    "roles": "Roles",
    "applications": "Applications",
}
SUPPORTED_DATA_FORMATS = {"JSON"}

# Errors captured per record; anything else escapes the batch
RECORD_ERRORS = (ValidationError, ConflictError, NotFoundError, AuthorizationError, PersistenceError)


# ─────────────────────────────────────────────────────────────────────────────
# Request / result types
# ─────────────────────────────────────────────────────────────────────────────
@dataclass
class ImportRequest:
    migration_type: str
    records: list[Any]
    overwrite_existing: bool = False
    validate_only: bool = False
    send_notifications: bool = True


@dataclass
class RecordError:
    index: int
    identifier: Optional[str]
    error_type: str
    message: str

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "identifier": self.identifier,
            "errorType": self.error_type,
            "message": self.message,
        }


@dataclass
class ImportOutcome:
    migration_type: str
    validate_only: bool
    total_records: int
    successful_records: int = 0
    failed_records: int = 0
    created_records: int = 0
    updated_records: int = 0
    errors: list[RecordError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    message: str = ""
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    end_time: Optional[datetime] = None
    _started: float = field(init=False, default_factory=time.monotonic, repr=False)
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return self.failed_records == 0

    def add_error(self, index: int, identifier: Optional[str], exc: CamsError) -> None:
        self.failed_records += 1
        self.errors.append(RecordError(index, identifier, exc.error_type, exc.detail))

    def finish(self) -> None:
        self.end_time = datetime.now(timezone.utc)
        self.duration_ms = int((time.monotonic() - self._started) * 1000)
        noun = self.migration_type.lower()
        if self.validate_only:
            self.message = "Validation completed successfully" if self.success else "Validation failed"
        elif self.success:
            self.message = f"Successfully imported {self.successful_records} {noun}"
        else:
            self.message = (
                f"Imported {self.successful_records} of {self.total_records} {noun}; "
                f"{self.failed_records} failed"
            )

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "migrationType": self.migration_type,
            "validateOnly": self.validate_only,
            "totalRecords": self.total_records,
            "successfulRecords": self.successful_records,
            "failedRecords": self.failed_records,
            "createdRecords": self.created_records,
            "updatedRecords": self.updated_records,
            "errors": [error.to_dict() for error in self.errors],
            "warnings": list(self.warnings),
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "durationMs": self.duration_ms,
        }


# ─────────────────────────────────────────────────────────────────────────────
# Request parsing
# ─────────────────────────────────────────────────────────────────────────────
def field_value(payload: dict, name: str, default: Any = None) -> Any:
    """Read ``name`` from a payload accepting camelCase or PascalCase keys."""
    if name in payload:
        return payload[name]
    pascal = name[:1].upper() + name[1:]
    if pascal in payload:
        return payload[pascal]
    return default


def normalize_migration_type(raw: Any) -> str:
    if not isinstance(raw, str) or raw.strip().lower() not in MIGRATION_TYPES:
        raise ValidationError(
            f"Unsupported migration type: {sanitize_for_log(raw)}. "
            f"Expected one of: {', '.join(MIGRATION_TYPES.values())}"
        )
    return MIGRATION_TYPES[raw.strip().lower()]


def _check_records(records: Any, migration_type: str, max_records: int) -> list[Any]:
    if not isinstance(records, list):
        raise ValidationError(f"Expected a list of {migration_type.lower()}")
    if not records:
        raise ValidationError(f"No {migration_type.lower()} found in migration data")
    if len(records) > max_records:
        raise ValidationError(f"Too many records: {len(records)} (maximum is {max_records})")
    return records


def parse_import_request(payload: Any, *, max_records: int = 1000, validate_only: Optional[bool] = None) -> ImportRequest:
    """Parse the generic ``/migration/validate`` and ``/migration/import`` body.

    ``data`` may be a JSON string (as the admin frontend sends it), an object
    holding ``{"users": [...]}`` etc, or the record list itself.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    migration_type = normalize_migration_type(field_value(payload, "migrationType"))

    data_format = field_value(payload, "dataFormat", "JSON")
    if not isinstance(data_format, str) or data_format.strip().upper() not in SUPPORTED_DATA_FORMATS:
        raise ValidationError("Only JSON data format is supported")

    data = field_value(payload, "data")
    if data is None or (isinstance(data, str) and not data.strip()):
        raise ValidationError("Migration data is required")
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except json.JSONDecodeError:
            raise ValidationError("Invalid JSON format in migration data")

    nested: dict = {}
    if isinstance(data, dict):
        nested = data
        records = field_value(data, migration_type.lower())
    else:
        records = data
    records = _check_records(records, migration_type, max_records)

    if validate_only is None:
        validate_only = validate_bool(field_value(payload, "validateOnly"), "validateOnly", default=False)

    overwrite = field_value(payload, "overwriteExisting")
    if overwrite is None:
        overwrite = field_value(nested, "overwriteExisting")
    notifications = field_value(payload, "sendNotifications")
    if notifications is None:
        notifications = field_value(nested, "sendWelcomeEmails")

    return ImportRequest(
        migration_type=migration_type,
        records=records,
        overwrite_existing=validate_bool(overwrite, "overwriteExisting", default=False),
        validate_only=validate_only,
        send_notifications=validate_bool(notifications, "sendNotifications", default=True),
    )


def parse_typed_request(payload: Any, migration_type: str, *, max_records: int = 1000) -> ImportRequest:
    """Parse ``/migration/users|roles|applications`` bodies (records under a typed key)."""
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    migration_type = normalize_migration_type(migration_type)
    records = _check_records(field_value(payload, migration_type.lower()), migration_type, max_records)

    notifications = field_value(payload, "sendWelcomeEmails")
    if notifications is None:
        notifications = field_value(payload, "sendNotifications")

    return ImportRequest(
        migration_type=migration_type,
        records=records,
        overwrite_existing=validate_bool(field_value(payload, "overwriteExisting"), "overwriteExisting", default=False),
        validate_only=validate_bool(field_value(payload, "validateOnly"), "validateOnly", default=False),
        send_notifications=validate_bool(notifications, "sendWelcomeEmails", default=True),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Per-type record handlers
# ─────────────────────────────────────────────────────────────────────────────
@dataclass
class PreparedRecord:
    identifier: str
    values: dict[str, Any]
    keys: list[tuple] = field(default_factory=list)
    existing: Any = None
    refs: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


class RecordHandler:
    """Validation and persistence for one migration type."""

    noun = "record"

    def __init__(self, cfg: AppConfig, ctx: RequestContext, request: ImportRequest, outcome: ImportOutcome):
        self.cfg = cfg
        self.ctx = ctx
        self.request = request
        self.outcome = outcome
        self.can_manage = is_authorized(ctx.roles, cfg.management_roles)

    def identify(self, raw: Any) -> Optional[str]:
        return None

    def prepare(self, raw: Any) -> PreparedRecord:
        raise NotImplementedError

    def resolve_keys(self, record: PreparedRecord) -> None:
        """Fill in batch keys that depend on stored references."""

    def resolve(self, record: PreparedRecord) -> None:
        """Resolve references and look up the existing row (if any)."""
        raise NotImplementedError

    def duplicate_message(self, record: PreparedRecord, key: tuple) -> str:
        return f"Duplicate {self.noun} '{record.identifier}' appears earlier in this batch"

    def apply(self, record: PreparedRecord) -> Optional[Callable[[], None]]:
        """Persist the record in the current session; may return a post-commit callback."""
        raise NotImplementedError


class UserHandler(RecordHandler):
    noun = "user"

    def identify(self, raw: Any) -> Optional[str]:
        if isinstance(raw, dict):
            value = field_value(raw, "username") or field_value(raw, "email")
            return sanitize_for_log(value) if value else None
        return None

    def prepare(self, raw: Any) -> PreparedRecord:
        if not isinstance(raw, dict):
            raise ValidationError("User record must be a JSON object")

        username = validate_username(field_value(raw, "username"))
        email = validate_email(field_value(raw, "email"))
        roles = field_value(raw, "roles") or []
        if not isinstance(roles, list) or not all(isinstance(r, str) and r.strip() for r in roles):
            raise ValidationError("roles must be a list of role names")

        values = {
            "username": username,
            "email": email,
            "password": validate_password(field_value(raw, "password")),
            "first_name": validate_name(field_value(raw, "firstName"), "First name"),
            "last_name": validate_name(field_value(raw, "lastName"), "Last name"),
            "phone_number": validate_phone(field_value(raw, "phoneNumber")),
            "is_active": validate_bool(field_value(raw, "isActive"), "isActive"),
            "roles": [r.strip() for r in roles],
        }
        return PreparedRecord(
            identifier=username,
            values=values,
            keys=[("username", username.lower()), ("email", email)],
        )

    def duplicate_message(self, record: PreparedRecord, key: tuple) -> str:
        kind, value = key
        return f"Duplicate {kind} '{value}' appears earlier in this batch"

    def _resolve_roles(self, names: list[str], *, for_create: bool) -> list[Role]:
        if not names:
            if not for_create:
                return []
            names = [self.cfg.default_user_role]

        wanted = {name.lower(): name for name in names}
        found = db.session.scalars(select(Role).where(func.lower(Role.name).in_(list(wanted)))).all()
        by_name = {role.name.lower(): role for role in found}

        unknown = [wanted[key] for key in wanted if key not in by_name]
        if unknown:
            raise ValidationError(f"Unknown role(s): {', '.join(sorted(unknown))}")
        inactive = [role.name for role in by_name.values() if not role.is_active]
        if inactive:
            raise ValidationError(f"Inactive role(s) cannot be assigned: {', '.join(sorted(inactive))}")
        return [by_name[key] for key in wanted]

    def resolve(self, record: PreparedRecord) -> None:
        values = record.values
        by_username = db.session.scalars(
            select(User).where(func.lower(User.username) == values["username"].lower())
        ).first()
        by_email = db.session.scalars(
            select(User).where(func.lower(User.email) == values["email"])
        ).first()

        if by_username is not None and by_email is not None and by_username.id != by_email.id:
            raise ConflictError(
                f"Username '{values['username']}' and email '{values['email']}' "
                "belong to different existing users"
            )
        existing = by_username or by_email
        if existing is not None and not self.request.overwrite_existing:
            if by_username is not None:
                raise ConflictError(f"User with username '{values['username']}' already exists")
            raise ConflictError(f"User with email '{values['email']}' already exists")

        record.existing = existing
        record.refs["roles"] = self._resolve_roles(values["roles"], for_create=existing is None)
        self._check_privileges(record)

    def _check_privileges(self, record: PreparedRecord) -> None:
        """Keep imports from reaching what only platform administrators may change.

        Callers outside ``management_roles`` cannot change the role set of an
        existing user, grant a management role, or overwrite a user who holds
        one. Nobody can deactivate their own account through an import.
        """
        user: Optional[User] = record.existing
        if user is not None and user.id == self.ctx.user_id and not record.values["is_active"]:
            raise ValidationError("You cannot deactivate your own account")
        if self.can_manage:
            return

        protected = {name.lower() for name in self.cfg.management_roles}
        if user is None:
            granted = sorted(role.name for role in record.refs["roles"] if role.name.lower() in protected)
            if granted:
                raise AuthorizationError(
                    f"Only platform administrators may grant role(s): {', '.join(granted)}"
                )
            return
        if any(name.lower() in protected for name in user.active_role_names()):
            raise AuthorizationError(f"User '{user.username}' can only be updated by a platform administrator")
        if record.values["roles"]:
            raise AuthorizationError("Only platform administrators may change the roles of an existing user")

    def apply(self, record: PreparedRecord) -> Optional[Callable[[], None]]:
        values = record.values
        roles: list[Role] = record.refs["roles"]
        user: Optional[User] = record.existing

        if user is not None:
            user.username = values["username"]
            user.email = values["email"]
            user.first_name = values["first_name"]
            user.last_name = values["last_name"]
            user.phone_number = values["phone_number"]
            user.is_active = values["is_active"]
            if values["password"]:
                user.password_hash = generate_password_hash(values["password"])
            if roles:
                role_assignment.sync_role_set(user, {role.id for role in roles}, assigned_by=self.ctx.user_id)
            db.session.flush()
            self.outcome.updated_records += 1
            return None

        temp_password = None
        password = values["password"]
        if not password:
            temp_password = generate_temp_password()
            password = temp_password

        user = User(
            username=values["username"],
            email=values["email"],
            password_hash=generate_password_hash(password),
            first_name=values["first_name"],
            last_name=values["last_name"],
            phone_number=values["phone_number"],
            is_active=values["is_active"],
        )
        db.session.add(user)
        db.session.flush()
        for role in roles:
            db.session.add(UserRole(user_id=user.id, role_id=role.id, assigned_by=self.ctx.user_id))
        db.session.flush()
        self.outcome.created_records += 1

        if not (self.request.send_notifications and self.cfg.send_welcome_emails):
            return None

        cfg = self.cfg
        username, email, first_name = user.username, user.email, user.first_name

        def welcome() -> None:
            send_welcome_email(cfg, username=username, email=email, first_name=first_name,
                               temp_password=temp_password)

        return welcome


class RoleHandler(RecordHandler):
    noun = "role"

    def identify(self, raw: Any) -> Optional[str]:
        if isinstance(raw, dict) and field_value(raw, "name"):
            return sanitize_for_log(field_value(raw, "name"))
        return None

    def prepare(self, raw: Any) -> PreparedRecord:
        if not isinstance(raw, dict):
            raise ValidationError("Role record must be a JSON object")
        name = validate_text(field_value(raw, "name"), "Role name", min_length=2, max_length=50, required=True)
        values = {
            "name": name,
            "description": validate_text(field_value(raw, "description"), "Description", max_length=200),
            "is_active": validate_bool(field_value(raw, "isActive"), "isActive"),
        }
        permissions = field_value(raw, "permissions") or []
        if not isinstance(permissions, list):
            raise ValidationError("permissions must be a list")
        record = PreparedRecord(identifier=name, values=values, keys=[("name", name.lower())])
        if permissions:
            record.warnings.append(f"Role '{name}': permissions are not stored and were ignored")
        return record

    def resolve(self, record: PreparedRecord) -> None:
        name = record.values["name"]
        existing = db.session.scalars(select(Role).where(func.lower(Role.name) == name.lower())).first()
        if existing is not None:
            if not self.request.overwrite_existing:
                raise ConflictError(f"Role '{name}' already exists")
            if existing.is_system:
                raise ValidationError(f"System role '{existing.name}' cannot be overwritten")
        record.existing = existing

    def apply(self, record: PreparedRecord) -> Optional[Callable[[], None]]:
        values = record.values
        role: Optional[Role] = record.existing
        if role is not None:
            role.name = values["name"]
            role.description = values["description"]
            role.is_active = values["is_active"]
            db.session.flush()
            self.outcome.updated_records += 1
            return None
        db.session.add(Role(
            name=values["name"],
            description=values["description"],
            is_active=values["is_active"],
            is_system=False,
        ))
        db.session.flush()
        self.outcome.created_records += 1
        return None


class ApplicationHandler(RecordHandler):
    noun = "application"

    def identify(self, raw: Any) -> Optional[str]:
        if isinstance(raw, dict) and field_value(raw, "name"):
            return sanitize_for_log(field_value(raw, "name"))
        return None

    def prepare(self, raw: Any) -> PreparedRecord:
        if not isinstance(raw, dict):
            raise ValidationError("Application record must be a JSON object")
        name = validate_text(field_value(raw, "name"), "Application name", min_length=2, max_length=100, required=True)
        owner = field_value(raw, "ownerUsername")
        if owner is not None and not isinstance(owner, str):
            raise ValidationError("ownerUsername must be a string")
        values = {
            "name": name,
            "description": validate_text(field_value(raw, "description"), "Description", max_length=500),
            "version": validate_text(field_value(raw, "version"), "Version", max_length=20),
            "environment": validate_text(field_value(raw, "environment"), "Environment", max_length=50),
            "tags": validate_text(field_value(raw, "tags"), "Tags", max_length=200),
            "is_active": validate_bool(field_value(raw, "isActive"), "isActive"),
            "owner_username": owner.strip() if owner and owner.strip() else None,
        }
        return PreparedRecord(identifier=name, values=values)

    def _resolve_owner(self, owner_username: Optional[str]) -> User:
        if owner_username is None:
            if self.ctx.user_id is None:
                raise ValidationError("ownerUsername is required")
            owner = db.session.get(User, self.ctx.user_id)
            if owner is None:
                raise ValidationError("Calling user no longer exists")
            return owner
        owner = db.session.scalars(
            select(User).where(func.lower(User.username) == owner_username.lower())
        ).first()
        if owner is None:
            raise ValidationError(f"Owner '{owner_username}' does not exist")
        return owner

    def resolve_keys(self, record: PreparedRecord) -> None:
        owner = self._resolve_owner(record.values["owner_username"])
        record.refs["owner"] = owner
        record.keys = [("application", owner.id, record.values["name"].lower())]

    def resolve(self, record: PreparedRecord) -> None:
        values = record.values
        owner = record.refs["owner"]

        existing = db.session.scalars(
            select(Application).where(
                Application.user_id == owner.id,
                func.lower(Application.name) == values["name"].lower(),
            )
        ).first()
        if existing is not None and not self.request.overwrite_existing:
            raise ConflictError(f"Application '{values['name']}' already exists for owner '{owner.username}'")
        record.existing = existing

    def duplicate_message(self, record: PreparedRecord, key: tuple) -> str:
        return (
            f"Duplicate application '{record.identifier}' for owner "
            f"'{record.refs['owner'].username}' appears earlier in this batch"
        )

    def apply(self, record: PreparedRecord) -> Optional[Callable[[], None]]:
        values = record.values
        app_row: Optional[Application] = record.existing
        fields = ("name", "description", "version", "environment", "tags", "is_active")
        if app_row is not None:
            for name in fields:
                setattr(app_row, name, values[name])
            db.session.flush()
            self.outcome.updated_records += 1
            return None
        db.session.add(Application(user_id=record.refs["owner"].id, **{name: values[name] for name in fields}))
        db.session.flush()
        self.outcome.created_records += 1
        return None


HANDLERS: dict[str, type[RecordHandler]] = {
    "Users": UserHandler,
    "Roles": RoleHandler,
    "Applications": ApplicationHandler,
}


# ─────────────────────────────────────────────────────────────────────────────
# Reconciler
# ─────────────────────────────────────────────────────────────────────────────
def run_import(request: ImportRequest, ctx: RequestContext, cfg: Optional[AppConfig] = None) -> ImportOutcome:
    """Validate and (unless validate-only) apply an import batch.

    Raises:
        InfrastructureError: If the store becomes unavailable mid-batch
    """
    cfg = cfg or current_app.config["APP_CONFIG"]
    outcome = ImportOutcome(
        migration_type=request.migration_type,
        validate_only=request.validate_only,
        total_records=len(request.records),
    )
    handler = HANDLERS[request.migration_type](cfg, ctx, request, outcome)
    claimed: set[tuple] = set()
    dispatcher = get_dispatcher()

    logger.info(
        "Starting %s %s batch of %d record(s) by %s (overwrite=%s)",
        "validation of" if request.validate_only else "import of",
        request.migration_type.lower(),
        len(request.records),
        sanitize_for_log(ctx.username),
        request.overwrite_existing,
    )

    try:
        for index, raw in enumerate(request.records):
            identifier = handler.identify(raw)
            try:
                record = handler.prepare(raw)
                identifier = record.identifier
                handler.resolve_keys(record)
                for key in record.keys:
                    if key in claimed:
                        raise ConflictError(handler.duplicate_message(record, key))
                handler.resolve(record)

                callback = None
                if request.validate_only:
                    db.session.rollback()
                else:
                    with unit_of_work():
                        callback = handler.apply(record)
                # Keys count as taken only once the record went through
                claimed.update(record.keys)
                outcome.successful_records += 1
                outcome.warnings.extend(record.warnings)
                if callback is not None:
                    dispatcher.submit(callback)
            except RECORD_ERRORS as exc:
                db.session.rollback()
                outcome.add_error(index, identifier, exc)
                logger.info(
                    "%s record %d (%s) rejected: %s",
                    request.migration_type, index, sanitize_for_log(identifier), exc.detail,
                )
    except OperationalError as exc:
        db.session.rollback()
        outcome.finish()
        _audit_batch(request, ctx, outcome, aborted=True)
        raise InfrastructureError("Database is unavailable; batch aborted") from exc
    except InfrastructureError:
        outcome.finish()
        _audit_batch(request, ctx, outcome, aborted=True)
        raise

    outcome.finish()
    _audit_batch(request, ctx, outcome)
    logger.info(
        "%s batch finished: total=%d successful=%d failed=%d",
        request.migration_type, outcome.total_records, outcome.successful_records, outcome.failed_records,
    )
    return outcome


def _audit_batch(request: ImportRequest, ctx: RequestContext, outcome: ImportOutcome, *, aborted: bool = False) -> None:
    details = {
        "migration_type": request.migration_type,
        "overwrite_existing": request.overwrite_existing,
        "total": outcome.total_records,
        "successful": outcome.successful_records,
        "failed": outcome.failed_records,
        "created": outcome.created_records,
        "updated": outcome.updated_records,
    }
    if aborted:
        details["aborted"] = True
    queue_audit_event(
        "migration_validate" if request.validate_only else "migration_import",
        ctx.username,
        target=f"batch:{request.migration_type}",
        details=details,
        success=outcome.success and not aborted,
        ip_address=ctx.ip_address,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Templates
# ─────────────────────────────────────────────────────────────────────────────
def get_template(template_type: str) -> dict:
    """Example payload for a migration type (case-insensitive)."""
    key = (template_type or "").strip().lower()
    if key == "users":
        return {
            "users": [{
                "username": "example_user",
                "email": "user@example.com",
                "password": "TempPassword123!",
                "firstName": "John",
                "lastName": "Doe",
                "phoneNumber": "123-456-7890",
                "isActive": True,
                "roles": ["User"],
            }],
            "overwriteExisting": False,
            "sendWelcomeEmails": True,
        }
    if key == "roles":
        return {
            "roles": [{
                "name": "ExampleRole",
                "description": "This is an example role",
                "isActive": True,
                "permissions": ["Read", "Write"],
            }],
            "overwriteExisting": False,
        }
    if key == "applications":
        return {
            "applications": [{
                "name": "Example Application",
                "description": "This is an example application",
                "version": "1.0.0",
                "environment": "Development",
                "tags": "api, web, backend",
                "isActive": True,
            }],
            "overwriteExisting": False,
        }
    raise ValidationError(f"Unknown template type: {sanitize_for_log(template_type)}")
