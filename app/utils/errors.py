"""JSON error bodies shared by every blueprint.

Every error response has the shape ``{"error": <message>, "code": <E.*>}``
plus an optional ``details`` object, so the front end can branch on
``code`` and show ``error`` as-is.

    from app.utils.errors import api_error, E

    return api_error(E.VALIDATION_REQUIRED, "user_input is required")
    return api_error(E.AI_FAILED, "Offer generation failed", details={"reason": msg})
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Error codes returned in the ``code`` field."""

    # 400: request is missing or mistyping a field
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    # 422: well-formed but rejected by a business rule
    VALIDATION_CONSTRAINT = "ERR_VALIDATION_CONSTRAINT"

    NOT_FOUND = "ERR_NOT_FOUND"

    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    FORBIDDEN = "ERR_FORBIDDEN"

    # text-generation endpoint failed or returned garbage
    AI_FAILED = "ERR_AI_FAILED"

    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


_STATUS_BY_CODE: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.VALIDATION_CONSTRAINT: 422,
    E.NOT_FOUND: 404,
    E.UNAUTHORIZED: 401,
    E.FORBIDDEN: 403,
    E.AI_FAILED: 502,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def status_for(code: str) -> int:
    """HTTP status for an error code; unknown codes are client errors."""
    return _STATUS_BY_CODE.get(code, 400)


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """Build a ``(response, status)`` pair for a Flask view.

    ``status`` overrides the code's default status. ``details`` is
    included only when non-empty.
    """
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or status_for(code)
