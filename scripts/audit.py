"""Audit logging utilities for CAMS admin operations."""

from __future__ import annotations
import datetime
import hashlib
import hmac
import json
import os
import sys
from pathlib import Path
from typing import Any, Literal

AUDIT_LOG_DIR = Path(os.environ.get("AUDIT_LOG_DIR", ".runtime/audit"))
AUDIT_LOG_FILE = AUDIT_LOG_DIR / "cams-events.jsonl"

_default_secret_paths: list[Path] = []
_env_secret_path_str = os.environ.get("AUDIT_LOG_SIGNING_KEY_FILE")
if _env_secret_path_str:
    _default_secret_paths.append(Path(_env_secret_path_str))
_default_secret_paths.append(Path(".runtime/secrets/audit_log_signing_key"))
_configured_key = ""

EventType = Literal[
    # Migration
    "migration_validate", "migration_import",
    # Role assignment
    "role_assign", "role_remove", "user_roles_replace",
    # Bulk management
    "user_bulk_delete", "user_bulk_toggle", "role_bulk_delete",
    # Role lifecycle
    "role_create", "role_update", "role_toggle", "role_delete",
    # Security
    "access_denied",
]


def configure(log_dir: str | Path, signing_key: str | None = None) -> None:
    """Point the audit trail at ``log_dir`` (called once by the app factory)."""
    global AUDIT_LOG_DIR, AUDIT_LOG_FILE, _configured_key
    AUDIT_LOG_DIR = Path(log_dir)
    AUDIT_LOG_FILE = AUDIT_LOG_DIR / "cams-events.jsonl"
    if signing_key is not None:
        _configured_key = signing_key


def _get_signing_key() -> bytes:
    """Get the audit signing key (environment, then app config, then secret files)."""
    if "AUDIT_LOG_SIGNING_KEY" in os.environ:
        return os.environ.get("AUDIT_LOG_SIGNING_KEY", "").strip().encode("utf-8")
    if _configured_key:
        return _configured_key.strip().encode("utf-8")
    for path in _default_secret_paths:
        if path.exists():
            try:
                return path.read_text(encoding="utf-8").strip().encode("utf-8")
            except OSError:
                continue
    return b""


def _ensure_audit_dir() -> None:
    """Create audit directory with restricted permissions."""
    AUDIT_LOG_DIR.mkdir(parents=True, exist_ok=True)
    AUDIT_LOG_DIR.chmod(0o700)


def _sign_event(event: dict[str, Any]) -> str:
    """Generate HMAC-SHA256 signature for audit event."""
    signing_key = _get_signing_key()
    if not signing_key:
        return ""
    # Canonical JSON representation for signing
    canonical = json.dumps(event, sort_keys=True, separators=(",", ":"), default=str)
    return hmac.new(signing_key, canonical.encode("utf-8"), hashlib.sha256).hexdigest()


def log_event(
    event_type: EventType,
    actor: str,
    *,
    target: str | None = None,
    details: dict[str, Any] | None = None,
    success: bool = True,
    ip_address: str | None = None,
) -> None:
    """Append a signed event to the audit trail.

    Args:
        event_type: Kind of operation (migration_import, role_assign, ...)
        actor: Username of the caller (or "cli"/"system")
        target: Entity affected (e.g. "user:12", "role:3", "batch:Users")
        details: Additional context (counts, ids, error messages)
        success: Whether the operation succeeded
        ip_address: Caller address when the event originates from HTTP
    """
    _ensure_audit_dir()

    event = {
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "event_type": event_type,
        "actor": actor,
        "target": target,
        "ip_address": ip_address,
        "success": success,
        "details": details or {},
    }

    signature = _sign_event(event)
    if signature:
        event["signature"] = signature

    # Append to JSONL file (one JSON object per line)
    with AUDIT_LOG_FILE.open("a", encoding="utf-8") as f:
        f.write(json.dumps(event, ensure_ascii=False, default=str) + "\n")

    AUDIT_LOG_FILE.chmod(0o600)


def safe_log_event(
    event_type: EventType,
    actor: str,
    *,
    target: str | None = None,
    details: dict[str, Any] | None = None,
    success: bool = True,
    ip_address: str | None = None,
) -> bool:
    """Log an audit event without ever raising.

    Returns:
        True if event was logged successfully, False if logging failed
    """
    try:
        log_event(
            event_type,
            actor,
            target=target,
            details=details,
            success=success,
            ip_address=ip_address,
        )
        return True
    except Exception as e:
        print(
            f"[audit] Warning: Failed to log {event_type} event for {actor}: {e}",
            file=sys.stderr,
        )
        return False


def read_events() -> list[dict[str, Any]]:
    """Return all parseable events in file order."""
    if not AUDIT_LOG_FILE.exists():
        return []
    events = []
    with AUDIT_LOG_FILE.open("r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            try:
                events.append(json.loads(line))
            except json.JSONDecodeError:
                continue
    return events


def verify_audit_log() -> tuple[int, int]:
    """Verify all signatures in the audit log.

    Returns:
        Tuple of (total_events, valid_signatures)
    """
    if not AUDIT_LOG_FILE.exists():
        return 0, 0

    total = 0
    valid = 0

    with AUDIT_LOG_FILE.open("r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            total += 1
            try:
                event = json.loads(line)
                stored_sig = event.pop("signature", "")
                if not stored_sig:
                    continue
                computed_sig = _sign_event(event)
                if hmac.compare_digest(stored_sig, computed_sig):
                    valid += 1
            except (json.JSONDecodeError, KeyError):
                continue

    return total, valid


if __name__ == "__main__":
    total, valid = verify_audit_log()
    print(f"Audit log: {valid}/{total} events with valid signatures")
    sys.exit(0 if total == valid else 1)
