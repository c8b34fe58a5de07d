"""
Flask helpers for bearer token authentication and role-based authorization.

Tokens are issued by the external authentication service. They are validated
with PyJWT, either against a shared HS256 secret or, when ``JWT_JWKS_URL`` is
configured, against the issuer's JWKS (RS256). The caller's roles are always
loaded from the database, never trusted from the token.
"""

import logging
from functools import wraps
from typing import Optional

import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidTokenError,
    PyJWKClientError,
)
from flask import current_app, g, request

from cams.core.exceptions import AuthenticationError, AuthorizationError, CamsError
from cams.core.rbac import ANONYMOUS, RequestContext, is_authorized, resolve_request_context
from cams.core.side_effects import queue_audit_event
from cams.core.validators import sanitize_for_log

logger = logging.getLogger(__name__)

# Global JWKS client (cached singleton)
_jwks_client: Optional[PyJWKClient] = None

PUBLIC_ENDPOINTS = {"health.health_check", "health.readiness_check", "docs.openapi_document", "static"}


def get_jwks_client(jwks_url: str) -> PyJWKClient:
    """Get cached JWKS client (keys cached for one hour)."""
    global _jwks_client
    if _jwks_client is None:
        logger.info(f"Initializing JWKS client for: {jwks_url}")
        _jwks_client = PyJWKClient(jwks_url, cache_keys=True, max_cached_keys=16, lifespan=3600)
    return _jwks_client


def validate_jwt_token(token: str) -> dict:
    """
    Validate a bearer token and return its claims.

    Validations performed: signature, expiration, not-before, issuer and
    audience (when configured). ``exp`` and ``sub`` are mandatory.

    Raises:
        AuthenticationError: If any validation fails
    """
    cfg = current_app.config["APP_CONFIG"]

    try:
        if cfg.jwt_jwks_url:
            key = get_jwks_client(cfg.jwt_jwks_url).get_signing_key_from_jwt(token).key
        else:
            key = cfg.jwt_key_resolved

        return jwt.decode(
            token,
            key,
            algorithms=cfg.jwt_algorithms,
            issuer=cfg.jwt_issuer or None,
            audience=cfg.jwt_audience or None,
            options={
                "require": ["exp", "sub"],
                "verify_aud": bool(cfg.jwt_audience),
            },
            leeway=5,  # Allow small clock skew between services
        )
    except ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except InvalidIssuerError:
        raise AuthenticationError("Invalid token issuer")
    except InvalidAudienceError:
        raise AuthenticationError("Invalid token audience")
    except InvalidSignatureError:
        raise AuthenticationError("Invalid token signature")
    except DecodeError:
        raise AuthenticationError("Malformed token")
    except (InvalidTokenError, PyJWKClientError) as e:
        logger.warning(f"JWT validation failed: {e}")
        raise AuthenticationError("Invalid token")


def _client_ip() -> Optional[str]:
    return request.remote_addr


def authenticate_request() -> None:
    """Resolve ``g.request_context`` from the Authorization header.

    Registered as a ``before_request`` hook. Failures are stored on ``g`` and
    raised by ``require_roles`` so public endpoints stay reachable.
    """
    g.request_context = RequestContext(user_id=None, username=ANONYMOUS.username, ip_address=_client_ip())
    g.auth_error = None

    if request.endpoint in PUBLIC_ENDPOINTS:
        return

    auth_header = request.headers.get("Authorization", "")
    if not auth_header:
        return
    if not auth_header.startswith("Bearer ") or not auth_header[7:].strip():
        g.auth_error = AuthenticationError("Invalid Authorization header format. Expected 'Bearer <token>'")
        return

    try:
        claims = validate_jwt_token(auth_header[7:].strip())
        g.request_context = resolve_request_context(claims, ip_address=_client_ip())
    except CamsError as e:
        logger.warning(f"Bearer authentication failed: {e.detail}")
        g.auth_error = e


def get_request_context() -> RequestContext:
    return getattr(g, "request_context", ANONYMOUS)


def require_roles(*roles: str, config_attr: Optional[str] = None):
    """
    Decorator requiring an authenticated caller holding any of ``roles``.

    Role names may also come from configuration: ``config_attr`` names an
    ``AppConfig`` property returning a list (e.g. ``"migration_roles"``).

    Raises:
        AuthenticationError: 401 when the token is missing or invalid
        AuthorizationError: 403 when no required role is held

    Example:
        @bp.route("/users/assign-roles", methods=["POST"])
        @require_roles(config_attr="management_roles")
        def assign_roles():
            ...
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            auth_error = getattr(g, "auth_error", None)
            if auth_error is not None:
                raise auth_error

            ctx = get_request_context()
            if not ctx.is_authenticated:
                raise AuthenticationError("Authentication required")

            required = list(roles)
            if config_attr:
                required.extend(getattr(current_app.config["APP_CONFIG"], config_attr))

            if not is_authorized(ctx.roles, required):
                logger.warning(
                    "Access denied for %s on %s (requires one of %s)",
                    sanitize_for_log(ctx.username), request.path, required,
                )
                queue_audit_event(
                    "access_denied",
                    ctx.username,
                    target=request.path,
                    details={"method": request.method, "required_roles": required},
                    success=False,
                    ip_address=ctx.ip_address,
                )
                raise AuthorizationError(f"Required role: {', '.join(required)}")

            return fn(*args, **kwargs)

        return wrapper
    return decorator
