"""
Statistics service — super-user dashboard over all users.

    get_statistics             users + activity counts + role totals
    filter_users               dashboard search (accent-insensitive name, email)
    update_user_role           superuser / tenant / worker
    get_user_activity_details  recent history + offer/work/billing counts

Every operation checks the super-user flag first and reports failures as
{"success": False, "error": ...} instead of raising.
"""

import logging
import unicodedata
from concurrent.futures import ThreadPoolExecutor

from flask import current_app

from app.auth import require_super_user
from app.core.exceptions import AuthorizationError
from app.models import db
from app.models.activity import Billing, History
from app.models.auth import ROLE_TYPES, User
from app.models.work import MyWork, Offer
from app.utils.errors import E

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 20


def _failure(message: str, code: str = E.INTERNAL) -> dict:
    """Failure result; error_code is one of the app.utils.errors.E constants."""
    return {"success": False, "error": message, "error_code": code}


def _check_super_user(principal, denied_message: str) -> dict | None:
    """None when allowed, otherwise the failure result to return."""
    try:
        require_super_user(principal)
    except AuthorizationError:
        if principal is None:
            return _failure("Unauthorized", E.UNAUTHORIZED)
        return _failure(denied_message, E.FORBIDDEN)
    return None


def _history_filter(email: str):
    return db.or_(History.user_email == email, History.tenant_email == email)


def _user_activity(email: str) -> tuple[int, object]:
    """(activity_count, last_activity) from History for one user."""
    count = db.session.execute(
        db.select(db.func.count(History.id)).where(_history_filter(email))
    ).scalar_one()
    last = db.session.execute(
        db.select(History.created_at)
        .where(_history_filter(email))
        .order_by(History.created_at.desc())
        .limit(1)
    ).scalar_one_or_none()
    return count, last


def _collect_activity(emails: list[str], max_workers: int) -> list[tuple[int, object]]:
    """Per-user activity, in input order. Parallel when max_workers > 1."""
    if max_workers <= 1 or len(emails) <= 1:
        return [_user_activity(e) for e in emails]

    app = current_app._get_current_object()

    def _run(email):
        with app.app_context():
            return _user_activity(email)

    with ThreadPoolExecutor(max_workers=min(max_workers, len(emails))) as pool:
        return list(pool.map(_run, emails))


def get_statistics(principal) -> dict:
    """
    Dashboard data: every user (newest first) with activity count and last
    activity, plus role totals.
    """
    denied = _check_super_user(principal, "Nincs jogosultságod a statisztikák megtekintéséhez")
    if denied:
        return denied

    try:
        users = db.session.execute(
            db.select(User).order_by(User.created_at.desc(), User.id.desc())
        ).scalars().all()

        max_workers = current_app.config.get("STATISTICS_MAX_WORKERS", 8)
        activity = _collect_activity([u.email for u in users], max_workers)

        rows = []
        for user, (count, last) in zip(users, activity):
            row = user.to_dict()
            row["activity_count"] = count
            row["last_activity"] = last.isoformat() if last else None
            rows.append(row)

        data = {
            "users": rows,
            "total_users": len(users),
            "total_super_users": sum(1 for u in users if u.is_super_user),
            "total_tenants": sum(1 for u in users if u.is_tenant),
            "total_workers": sum(1 for u in users if not u.is_tenant),
        }
    except Exception as e:
        logger.exception("Error fetching statistics")
        return _failure(str(e) or "Hiba a statisztikák lekérésekor")

    return {"success": True, "data": data}


def _fold(text: str) -> str:
    """Lowercase and drop combining marks (NFD), so 'Árpád' matches 'arpad'."""
    decomposed = unicodedata.normalize("NFD", (text or "").lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def filter_users(users: list[dict], search: str | None) -> list[dict]:
    """Name matched ignoring case and accents; email ignoring case."""
    if not search:
        return list(users)
    folded = _fold(search)
    lowered = search.lower()
    return [
        u for u in users
        if folded in _fold(u.get("name") or "") or lowered in (u.get("email") or "").lower()
    ]


def update_user_role(principal, user_id: int, role_type: str) -> dict:
    """Set the super-user/tenant flags for a role label."""
    denied = _check_super_user(principal, "Nincs jogosultságod a szerepkör módosításához")
    if denied:
        return denied

    flags = ROLE_TYPES.get(role_type)
    if flags is None:
        return _failure("Érvénytelen szerepkör", E.VALIDATION_INVALID)

    try:
        user = db.session.get(User, user_id)
        if user is None:
            return _failure(f"User {user_id} not found", E.NOT_FOUND)
        user.is_super_user = flags["is_super_user"]
        user.is_tenant = flags["is_tenant"]
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.exception("Error updating user role")
        return _failure(str(e) or "Hiba a szerepkör módosításakor")

    logger.info("Role of user %s set to %s by %s", user_id, role_type, principal.email)
    return {"success": True, "user": user.to_dict()}


def get_user_activity_details(principal, user_email: str) -> dict:
    """Last 20 history rows and record counts for one user/tenant email."""
    denied = _check_super_user(principal, "Nincs jogosultságod")
    if denied:
        return denied

    try:
        recent = db.session.execute(
            db.select(History)
            .where(_history_filter(user_email))
            .order_by(History.created_at.desc())
            .limit(RECENT_ACTIVITY_LIMIT)
        ).scalars().all()

        def _count(model):
            return db.session.execute(
                db.select(db.func.count(model.id)).where(model.tenant_email == user_email)
            ).scalar_one()

        data = {
            "recent_activity": [h.to_dict() for h in recent],
            "offers_count": _count(Offer),
            "works_count": _count(MyWork),
            "billings_count": _count(Billing),
        }
    except Exception as e:
        logger.exception("Error fetching user activity details")
        return _failure(str(e) or "Hiba a felhasználó aktivitás lekérésekor")

    return {"success": True, "data": data}
