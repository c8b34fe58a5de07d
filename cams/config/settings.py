"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


DEMO_DATABASE_URL = "sqlite:///cams.db"
DEMO_JWT_SECRET = "demo-jwt-secret-change-in-production"
DEMO_AUDIT_SIGNING_KEY = "demo-audit-signing-key-change-in-production"


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


@dataclass
class AppConfig:
    """Application configuration container."""
    # Mode
    demo_mode: bool

    # Flask
    secret_key: str

    # Database
    database_url: str = DEMO_DATABASE_URL
    database_echo: bool = False

    # Bearer token validation (tokens are issued by the external auth service)
    jwt_secret_key: str = ""
    jwt_jwks_url: str = ""
    jwt_issuer: str = "cams"
    jwt_audience: str = ""
    jwt_algorithms: list[str] = field(default_factory=lambda: ["HS256"])

    # Roles
    platform_admin_role: str = "PlatformAdmin"
    admin_role: str = "Admin"
    default_user_role: str = "User"

    # Migration
    migration_max_records: int = 1000
    send_welcome_emails: bool = True

    # SMTP (welcome emails)
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = ""

    # Side effects ("thread" or "inline")
    side_effect_mode: str = "thread"
    side_effect_workers: int = 2

    # Audit
    audit_log_dir: str = ".runtime/audit"
    audit_log_signing_key: str = ""

    @property
    def migration_roles(self) -> list[str]:
        """Roles allowed to run bulk migrations."""
        return [self.admin_role, self.platform_admin_role]

    @property
    def management_roles(self) -> list[str]:
        """Roles allowed to manage users and role assignments."""
        return [self.platform_admin_role]

    @property
    def smtp_enabled(self) -> bool:
        return bool(self.smtp_host)

    @property
    def jwt_key_resolved(self) -> str:
        """Get the bearer token verification key.

        Priority:
        1. Configured value in jwt_secret_key
        2. Docker secrets: /run/secrets/jwt_secret_key
        3. Environment variable: JWT_SECRET_KEY
        4. Demo mode: hardcoded demo secret when nothing else is configured

        Raises:
            ValueError: If no key is found in production mode
        """
        if self.jwt_secret_key:
            return self.jwt_secret_key

        for secret_name in ["jwt_secret_key", "jwt-secret-key"]:
            secret_path = Path("/run/secrets") / secret_name
            if secret_path.exists():
                secret = secret_path.read_text().strip()
                if secret:
                    return secret

        secret = os.environ.get("JWT_SECRET_KEY")
        if secret:
            return secret

        if self.demo_mode:
            return DEMO_JWT_SECRET

        raise ValueError(
            "JWT_SECRET_KEY not found. "
            "Set DEMO_MODE=true or provide the key via Docker secrets or environment variable."
        )


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() == "true"


def _get_or_generate(var_name: str, demo_default: Optional[str] = None, required: bool = True, demo_mode: bool = False) -> str:
    """Get environment variable or use demo default."""
    value = os.environ.get(var_name)
    if value:
        return value

    if demo_mode and demo_default is not None:
        print(f"[demo-mode] Using default for {var_name}")
        os.environ[var_name] = demo_default
        return demo_default

    if not required:
        return ""

    raise RuntimeError(f"Environment variable {var_name} is required in production mode.")


def _int_env(var_name: str, default: int) -> int:
    raw = os.environ.get(var_name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {var_name} must be an integer, got {raw!r}")


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    demo_mode = _env_flag("DEMO_MODE")

    # Flask secret key
    secret_key = _load_secret_from_file("flask_secret_key", "FLASK_SECRET_KEY")
    if not secret_key:
        if not demo_mode:
            raise RuntimeError("FLASK_SECRET_KEY not found in /run/secrets or environment")
        secret_key = secrets.token_urlsafe(48)
        os.environ["FLASK_SECRET_KEY"] = secret_key
        print("[demo-mode] Generated temporary FLASK_SECRET_KEY")

    # Database URL may embed credentials, so it is treated as a secret
    database_url = _load_secret_from_file("database_url", "DATABASE_URL")
    if not database_url:
        database_url = _get_or_generate("DATABASE_URL", demo_default=DEMO_DATABASE_URL, demo_mode=demo_mode)

    jwt_secret_key = _load_secret_from_file("jwt_secret_key", "JWT_SECRET_KEY") or ""
    jwt_jwks_url = os.environ.get("JWT_JWKS_URL", "").strip()
    if not jwt_secret_key and not jwt_jwks_url and demo_mode:
        jwt_secret_key = DEMO_JWT_SECRET
        print("[demo-mode] Using demo JWT_SECRET_KEY")

    jwt_algorithms = [
        alg.strip()
        for alg in os.environ.get("JWT_ALGORITHMS", "RS256" if jwt_jwks_url else "HS256").split(",")
        if alg.strip()
    ]

    # Audit log signing key
    audit_log_signing_key = _load_secret_from_file("audit_log_signing_key", "AUDIT_LOG_SIGNING_KEY") or ""
    if audit_log_signing_key:
        os.environ["AUDIT_LOG_SIGNING_KEY"] = audit_log_signing_key
    elif demo_mode:
        audit_log_signing_key = os.environ.get("AUDIT_LOG_SIGNING_KEY_DEMO", DEMO_AUDIT_SIGNING_KEY)
        os.environ["AUDIT_LOG_SIGNING_KEY"] = audit_log_signing_key
        print(f"[demo-mode] Using demo AUDIT_LOG_SIGNING_KEY: {audit_log_signing_key[:20]}...")

    smtp_password = _load_secret_from_file("smtp_password", "SMTP_PASSWORD") or ""
    smtp_user = os.environ.get("SMTP_USER", "")

    side_effect_mode = os.environ.get("SIDE_EFFECT_MODE", "thread").strip().lower()
    if side_effect_mode not in {"thread", "inline"}:
        raise RuntimeError(f"SIDE_EFFECT_MODE must be 'thread' or 'inline', got {side_effect_mode!r}")

    cfg = AppConfig(
        demo_mode=demo_mode,
        secret_key=secret_key,
        database_url=database_url,
        database_echo=_env_flag("DATABASE_ECHO"),
        jwt_secret_key=jwt_secret_key,
        jwt_jwks_url=jwt_jwks_url,
        jwt_issuer=os.environ.get("JWT_ISSUER", "cams"),
        jwt_audience=os.environ.get("JWT_AUDIENCE", ""),
        jwt_algorithms=jwt_algorithms,
        platform_admin_role=os.environ.get("PLATFORM_ADMIN_ROLE", "PlatformAdmin").strip(),
        admin_role=os.environ.get("ADMIN_ROLE", "Admin").strip(),
        default_user_role=os.environ.get("DEFAULT_USER_ROLE", "User").strip(),
        migration_max_records=_int_env("MIGRATION_MAX_RECORDS", 1000),
        send_welcome_emails=_env_flag("SEND_WELCOME_EMAILS", "true"),
        smtp_host=os.environ.get("SMTP_HOST", ""),
        smtp_port=_int_env("SMTP_PORT", 587),
        smtp_user=smtp_user,
        smtp_password=smtp_password,
        smtp_from=os.environ.get("SMTP_FROM", smtp_user),
        side_effect_mode=side_effect_mode,
        side_effect_workers=_int_env("SIDE_EFFECT_WORKERS", 2),
        audit_log_dir=os.environ.get("AUDIT_LOG_DIR", ".runtime/audit"),
        audit_log_signing_key=audit_log_signing_key,
    )

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    db_label = database_url.split("://", 1)[0]
    print(f"[settings] Mode={mode_label}; database={db_label}; side_effects={side_effect_mode}")

    if demo_mode:
        print("[settings] WARNING: Demo credentials in use. Do not deploy with these defaults.")

    return cfg
