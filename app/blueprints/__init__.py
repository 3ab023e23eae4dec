"""
Renovation Back Office
HTTP blueprints: offers, price catalog, statistics, health.
"""

from flask import request


def _int_arg(name, default, lo, hi=None):
    try:
        value = int(request.args.get(name, default))
    except (ValueError, TypeError):
        return default
    value = max(value, lo)
    return min(value, hi) if hi is not None else value


def paginated(query, serialize, default_limit=50, max_limit=500):
    """Page a SQLAlchemy query by the ``limit``/``offset`` query params.

    Returns the JSON body ``{items, total, limit, offset}`` with each row
    passed through ``serialize``.
    """
    limit = _int_arg("limit", default_limit, 1, max_limit)
    offset = _int_arg("offset", 0, 0)
    rows = query.limit(limit).offset(offset).all()
    return {
        "items": [serialize(row) for row in rows],
        "total": query.count(),
        "limit": limit,
        "offset": offset,
    }
