"""
JWT Auth Middleware — Verifies the identity provider's bearer token, sets g.principal_email.

Authentication is owned by the hosted identity provider; this service
only verifies the signed token it issues and reads the principal's email.

Priority order:
  1. JWT (Authorization: Bearer <token>)     →  g.principal_email from the "email" claim
  2. X-User-Email header (API_AUTH_ENABLED=false only, development/tests)

Downstream, app.auth.current_principal() turns the email into a Principal
(tenant scope + super-user flag).
"""

import logging

import jwt as pyjwt
from flask import current_app, g, request

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
    "/static/",
)


def _auth_enabled() -> bool:
    return str(current_app.config.get("API_AUTH_ENABLED", "true")).lower() not in ("false", "0", "no", "off")


def decode_identity_token(token: str) -> dict:
    """
    Decode and verify an identity-provider token.

    Raises jwt.exceptions on failure (ExpiredSignatureError, InvalidTokenError, etc.)
    """
    secret = current_app.config.get("IDENTITY_JWT_SECRET") or current_app.config["SECRET_KEY"]
    options = {}
    audience = current_app.config.get("IDENTITY_JWT_AUDIENCE")
    if not audience:
        options["verify_aud"] = False
    return pyjwt.decode(
        token,
        secret,
        algorithms=current_app.config.get("IDENTITY_JWT_ALGORITHMS", ["HS256"]),
        audience=audience,
        options=options,
    )


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.principal_email = None
        g.principal = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
            try:
                payload = decode_identity_token(token)
            except pyjwt.ExpiredSignatureError:
                logger.info("Expired identity token on %s", path)
                return
            except pyjwt.InvalidTokenError as exc:
                logger.warning("Invalid identity token on %s: %s", path, exc)
                return
            email = (payload.get("email") or "").strip()
            if email:
                g.principal_email = email
            return

        if not _auth_enabled():
            header_email = request.headers.get("X-User-Email", "").strip()
            if header_email:
                g.principal_email = header_email

    logger.info("Identity JWT middleware installed")
