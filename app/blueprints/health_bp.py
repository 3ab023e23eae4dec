"""
Health check blueprint.

Endpoints:
    GET /api/v1/health        — liveness, always 200 if the app is running
    GET /api/v1/health/ready  — simple 200 for load balancers
    GET /api/v1/health/live   — detailed system health (DB, LLM provider, catalog cache)
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from app.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__, url_prefix="/api/v1/health")


@health_bp.route("", methods=["GET"])
def health():
    return jsonify({"status": "ok", "app": "Renovation Back Office"}), 200


@health_bp.route("/ready", methods=["GET"])
def ready():
    """Simple readiness probe — always 200 if app is running."""
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Detailed liveness check with dependency status."""
    checks = {}
    overall = True

    # ── Database ─────────────────────────────────────────────────────
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        checks["database"] = {"status": "ok", "latency_ms": round(db_ms, 1)}
    except Exception as exc:
        checks["database"] = {"status": "error", "detail": str(exc)}
        overall = False
        logger.error("Health check — database failed: %s", exc)

    # ── Text-generation provider ─────────────────────────────────────
    provider = current_app.config.get("LLM_PROVIDER", "openai")
    if provider == "local" or current_app.config.get("OPENAI_API_KEY"):
        checks["llm"] = {"status": "ok", "provider": provider}
    else:
        # Offer generation fails fast without a key; reads still work
        checks["llm"] = {"status": "not_configured", "provider": provider}

    # ── Price catalog cache ──────────────────────────────────────────
    cache = current_app.extensions.get("price_catalog_cache")
    if cache is not None:
        checks["price_catalog_cache"] = {
            "status": "ok" if cache.enabled else "disabled",
            **cache.get_stats(),
        }

    # ── App info ─────────────────────────────────────────────────────
    checks["app"] = {
        "name": "Renovation Back Office",
        "debug": current_app.debug,
        "testing": current_app.testing,
    }

    status_code = 200 if overall else 503
    return jsonify({
        "status": "healthy" if overall else "degraded",
        "checks": checks,
    }), status_code
