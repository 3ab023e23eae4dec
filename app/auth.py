"""
Renovation Back Office
Principal resolution & authorization helpers.

Provides:
    - Principal: the calling user's email, tenant scope and super-user flag
    - resolve_principal(email): build a Principal from the users table
    - current_principal(): Principal for the current request (cached on g)
    - require_principal: decorator, 401 when no identity was presented
    - require_super_user(principal): raises AuthorizationError

Tenant scope:
    - tenant users (contractors) work in their own scope (their email)
    - workers work in the scope of the tenant that invited them
    - principals unknown to the users table are treated as their own tenant
"""

import functools
import logging
from dataclasses import dataclass

from flask import g

from app.core.exceptions import AuthorizationError
from app.models import db
from app.models.auth import User
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    email: str
    tenant_email: str
    is_super_user: bool = False
    user_id: int | None = None


def resolve_principal(email: str) -> Principal:
    """Look up the user row for an email and derive the tenant scope."""
    user = db.session.execute(
        db.select(User).where(User.email == email)
    ).scalar_one_or_none()
    if user is None:
        return Principal(email=email, tenant_email=email)
    return Principal(
        email=user.email,
        tenant_email=user.tenant_email,
        is_super_user=bool(user.is_super_user),
        user_id=user.id,
    )


def current_principal() -> Principal | None:
    """Return the Principal for the current request, or None if anonymous."""
    principal = getattr(g, "principal", None)
    if principal is not None:
        return principal
    email = getattr(g, "principal_email", None)
    if not email:
        return None
    principal = resolve_principal(email)
    g.principal = principal
    return principal


def is_super_user(email: str) -> bool:
    """Privileged check — always read from the users table, never from the token."""
    flag = db.session.execute(
        db.select(User.is_super_user).where(User.email == email)
    ).scalar_one_or_none()
    return bool(flag)


def require_super_user(principal: Principal | None) -> None:
    """Raise AuthorizationError unless the principal is a super-user."""
    if principal is None:
        raise AuthorizationError("Unauthorized")
    if not is_super_user(principal.email):
        logger.warning("Super-user check failed for %s", principal.email)
        raise AuthorizationError("Nincs jogosultságod")


def require_principal(f):
    """
    Decorator: require an authenticated principal for the endpoint.

    The resolved Principal is available via current_principal() / g.principal.
    """

    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if current_principal() is None:
            return api_error(E.UNAUTHORIZED, "Authentication required")
        return f(*args, **kwargs)

    return decorated
