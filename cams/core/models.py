"""ORM models for users, roles, role assignments and applications."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cams.core.database import db, utcnow


class User(db.Model):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(db.String(50), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(db.String(254), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(db.String(255), nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(db.String(50))
    last_name: Mapped[Optional[str]] = mapped_column(db.String(50))
    phone_number: Mapped[Optional[str]] = mapped_column(db.String(15))
    is_active: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(db.DateTime(timezone=True))

    role_assignments = relationship(
        "UserRole",
        back_populates="user",
        foreign_keys="UserRole.user_id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    applications = relationship("Application", back_populates="owner")

    def active_role_names(self) -> list[str]:
        return sorted(
            ra.role.name for ra in self.role_assignments if ra.is_active and ra.role.is_active
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "phoneNumber": self.phone_number,
            "isActive": self.is_active,
        }

    def __repr__(self) -> str:
        return f"<User {self.id} {self.username}>"


class Role(db.Model):
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(db.String(50), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(db.String(255))
    is_active: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=True)
    is_system: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    assignments = relationship("UserRole", back_populates="role")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "isActive": self.is_active,
            "isSystem": self.is_system,
        }

    def __repr__(self) -> str:
        return f"<Role {self.id} {self.name}>"


class UserRole(db.Model):
    """Assignment of a role to a user. At most one row per (user, role)."""

    __tablename__ = "user_roles"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role_id: Mapped[int] = mapped_column(ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_at: Mapped[datetime] = mapped_column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    assigned_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    is_active: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=True)

    user = relationship("User", back_populates="role_assignments", foreign_keys=[user_id])
    role = relationship("Role", back_populates="assignments")
    assigned_by_user = relationship("User", foreign_keys=[assigned_by])

    __table_args__ = (UniqueConstraint("user_id", "role_id", name="uq_user_roles_user_role"),)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "roleId": self.role_id,
            "assignedAt": self.assigned_at.isoformat() if self.assigned_at else None,
            "assignedBy": self.assigned_by,
            "isActive": self.is_active,
        }


class Application(db.Model):
    __tablename__ = "applications"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(db.String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(db.String(1000))
    version: Mapped[Optional[str]] = mapped_column(db.String(50))
    environment: Mapped[Optional[str]] = mapped_column(db.String(200))
    tags: Mapped[Optional[str]] = mapped_column(db.String(500))
    is_active: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
    last_accessed_at: Mapped[Optional[datetime]] = mapped_column(db.DateTime(timezone=True))

    owner = relationship("User", back_populates="applications")
    connections = relationship(
        "DatabaseConnection",
        back_populates="application",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_applications_owner_name"),)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ownerId": self.user_id,
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "environment": self.environment,
            "tags": self.tags,
            "isActive": self.is_active,
        }


class DatabaseConnection(db.Model):
    """Connection definition attached to an application (mapped only)."""

    __tablename__ = "database_connections"

    id: Mapped[int] = mapped_column(primary_key=True)
    application_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("applications.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(db.String(100), nullable=False)
    type: Mapped[str] = mapped_column(db.String(50), nullable=False)
    server: Mapped[str] = mapped_column(db.String(255), nullable=False)
    port: Mapped[Optional[int]] = mapped_column(db.Integer)
    database: Mapped[Optional[str]] = mapped_column(db.String(100))
    is_active: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    application = relationship("Application", back_populates="connections")
