"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in app/__init__.py with no default limits;
this module applies granular limits per route category.

Limits are keyed by the calling principal's email when one is known,
otherwise by remote IP.

Usage:
    from app.middleware.rate_limiter import init_rate_limits, rate_limit_key
    limiter = Limiter(key_func=rate_limit_key, ...)
    init_rate_limits(app, limiter)
"""

import logging

from flask import g, request as flask_request

logger = logging.getLogger(__name__)


def rate_limit_key():
    """Dynamic rate limit key: principal email if available, else remote IP."""
    email = getattr(g, "principal_email", None)
    if email:
        return f"principal:{email}"
    return flask_request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per principal, or per remote IP when anonymous):
        - Offer generation:  10/minute  (shared limit on the route, LLM calls are expensive)
        - Offer endpoints:   60/minute
        - Read endpoints:    200/minute (statistics, price catalog)
        - Health check:      exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("offer")
    if bp:
        limiter.limit("60/minute")(bp)

    for bp_name in ("statistics", "price_catalog"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit("200/minute")(bp)

    # Health check is exempt
    bp = app.blueprints.get("health_bp")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured — generate: 10/min, offers: 60/min, read: 200/min")
