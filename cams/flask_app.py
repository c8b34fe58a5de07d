"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with the database, blueprints, error handlers and
authentication middleware.
"""
from __future__ import annotations
import atexit
from pathlib import Path
from typing import Optional

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from cams.config import AppConfig, load_settings
from cams.core.database import db
from cams.core.side_effects import SideEffectDispatcher


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(config: Optional[AppConfig] = None) -> Flask:
    """Create and configure Flask application.

    Args:
        config: Pre-built configuration (tests); loaded from the environment when omitted
    """
    cfg = config or load_settings()

    app = Flask(__name__)
    app.config.setdefault(
        "OPENAPI_SPEC_PATH",
        str(Path(app.root_path).parent / "openapi" / "cams_openapi.yaml"),
    )

    # Store config for easy access in routes
    app.config["APP_CONFIG"] = cfg
    app.config["SECRET_KEY"] = cfg.secret_key
    app.config["DEMO_MODE"] = cfg.demo_mode
    app.config["JSON_SORT_KEYS"] = False

    # Database
    app.config["SQLALCHEMY_DATABASE_URI"] = cfg.database_url
    app.config["SQLALCHEMY_ECHO"] = cfg.database_echo
    db.init_app(app)
    from cams.core import models  # noqa: F401  (register mappers)

    # Side effects run after commit (thread pool, or inline for tests)
    dispatcher = SideEffectDispatcher(mode=cfg.side_effect_mode, max_workers=cfg.side_effect_workers)
    app.extensions["cams_side_effects"] = dispatcher
    atexit.register(dispatcher.shutdown, wait=False)

    # Audit trail location
    from scripts import audit
    audit.configure(cfg.audit_log_dir, cfg.audit_log_signing_key)

    # Trust X-Forwarded-* headers from proxy (nginx)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore

    # Register blueprints
    from cams.api import docs, errors, health, management, migration
    from cams.api.decorators import authenticate_request

    app.register_blueprint(health.bp)
    app.register_blueprint(docs.bp)
    app.register_blueprint(migration.bp, url_prefix="/migration")
    app.register_blueprint(management.bp, url_prefix="/management")

    errors.register_error_handlers(app)
    app.before_request(authenticate_request)

    # Log startup info
    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    print(f"[flask_app] Mode={mode_label}")
    print("[flask_app] Migration API registered at /migration, management API at /management")

    if cfg.demo_mode:
        print("[flask_app] WARNING: Demo mode active - do not deploy with demo credentials")

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, debug=True)
