#!/usr/bin/env python3
"""Run a bulk import from a JSON file against DATABASE_URL.

Run: python -m scripts.migrate users.json --type users [--validate-only] [--overwrite]

The file holds either the record list itself or an object with the records
under ``users``/``roles``/``applications`` (the format returned by
``GET /migration/template/<type>``).
"""
from __future__ import annotations
import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from sqlalchemy import func, select

from cams.core import migration_service
from cams.core.database import db
from cams.core.exceptions import CamsError, ValidationError
from cams.core.models import User
from cams.core.rbac import RequestContext, load_active_role_names


def operator_context(operator: str) -> RequestContext:
    """Caller context for CLI runs: the operator's account if it exists."""
    user = db.session.scalars(select(User).where(func.lower(User.username) == operator.lower())).first()
    if user is None:
        return RequestContext(user_id=None, username=operator)
    return RequestContext(user_id=user.id, username=user.username, roles=frozenset(load_active_role_names(user.id)))


def build_request(path: Path, migration_type: str, *, validate_only: bool, overwrite: bool,
                  send_emails: bool, max_records: int) -> migration_service.ImportRequest:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Invalid JSON in {path}: {exc.msg}")

    migration_type = migration_service.normalize_migration_type(migration_type)
    if isinstance(data, list):
        data = {migration_type.lower(): data}
    import_request = migration_service.parse_typed_request(data, migration_type, max_records=max_records)
    import_request.validate_only = validate_only
    import_request.overwrite_existing = overwrite
    import_request.send_notifications = send_emails
    return import_request


def main(argv: Optional[list[str]] = None) -> int:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description="CAMS bulk import")
    parser.add_argument("file", type=Path)
    parser.add_argument("--type", required=True, choices=["users", "roles", "applications"])
    parser.add_argument("--validate-only", action="store_true")
    parser.add_argument("--overwrite", action="store_true", help="Update existing records instead of failing")
    parser.add_argument("--operator", default="cli", help="Username recorded as the caller (default: cli)")
    parser.add_argument("--no-emails", action="store_true", help="Do not send welcome emails")
    args = parser.parse_args(argv)

    if not args.file.exists():
        print(f"[migrate] File not found: {args.file}", file=sys.stderr)
        return 2

    from cams.flask_app import create_app

    app = create_app()
    with app.app_context():
        cfg = app.config["APP_CONFIG"]
        try:
            import_request = build_request(
                args.file,
                args.type,
                validate_only=args.validate_only,
                overwrite=args.overwrite,
                send_emails=not args.no_emails,
                max_records=cfg.migration_max_records,
            )
            outcome = migration_service.run_import(import_request, operator_context(args.operator), cfg)
        except CamsError as exc:
            print(f"[migrate] {exc.error_type}: {exc.detail}", file=sys.stderr)
            return 2

    print(json.dumps(outcome.to_dict(), indent=2))
    return 0 if outcome.success else 1


if __name__ == "__main__":
    sys.exit(main())
