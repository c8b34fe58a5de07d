#!/usr/bin/env python3
"""Create the schema, the system roles and (optionally) a first PlatformAdmin.

Run: python -m scripts.seed --admin-username admin --admin-email admin@example.com
"""
from __future__ import annotations
import argparse
import os
import sys
from typing import Optional

from sqlalchemy import func, select
from werkzeug.security import generate_password_hash

from cams.config import AppConfig
from cams.core.database import db, unit_of_work
from cams.core.models import Role, User, UserRole

SYSTEM_ROLE_DESCRIPTIONS = {
    "platform_admin_role": "Full platform administration",
    "admin_role": "Administrative access, including bulk migration",
    "default_user_role": "Standard user access",
}


def seed_roles(cfg: AppConfig) -> list[Role]:
    """Ensure the three system roles exist. Returns them in hierarchy order."""
    roles = []
    with unit_of_work():
        for attr, description in SYSTEM_ROLE_DESCRIPTIONS.items():
            name = getattr(cfg, attr)
            role = db.session.scalars(select(Role).where(func.lower(Role.name) == name.lower())).first()
            if role is None:
                role = Role(name=name, description=description, is_active=True, is_system=True)
                db.session.add(role)
                print(f"[seed] Created role {name}")
            roles.append(role)
    return roles


def seed_admin(cfg: AppConfig, username: str, email: str, password: str) -> User:
    """Create (or reuse) a user and make sure it holds the PlatformAdmin role."""
    with unit_of_work():
        user = db.session.scalars(select(User).where(func.lower(User.username) == username.lower())).first()
        if user is None:
            user = User(username=username, email=email.lower(), password_hash=generate_password_hash(password))
            db.session.add(user)
            db.session.flush()
            print(f"[seed] Created user {username}")

        role = db.session.scalars(select(Role).where(Role.name == cfg.platform_admin_role)).one()
        assignment = db.session.scalars(
            select(UserRole).where(UserRole.user_id == user.id, UserRole.role_id == role.id)
        ).first()
        if assignment is None:
            db.session.add(UserRole(user_id=user.id, role_id=role.id))
        else:
            assignment.is_active = True
    return user


def seed(cfg: AppConfig, admin_username: Optional[str] = None, admin_email: Optional[str] = None,
         admin_password: Optional[str] = None) -> None:
    db.create_all()
    seed_roles(cfg)
    if admin_username:
        if not admin_email or not admin_password:
            raise ValueError("--admin-email and an admin password are required with --admin-username")
        seed_admin(cfg, admin_username, admin_email, admin_password)


def main(argv: Optional[list[str]] = None) -> int:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description="Seed the CAMS database")
    parser.add_argument("--admin-username")
    parser.add_argument("--admin-email")
    parser.add_argument("--admin-password", default=os.environ.get("SEED_ADMIN_PASSWORD"))
    args = parser.parse_args(argv)

    from cams.flask_app import create_app

    app = create_app()
    with app.app_context():
        try:
            seed(app.config["APP_CONFIG"], args.admin_username, args.admin_email, args.admin_password)
        except ValueError as exc:
            print(f"[seed] {exc}", file=sys.stderr)
            return 2
    print("[seed] Done")
    return 0


if __name__ == "__main__":
    sys.exit(main())
