"""Offer blueprint — AI offer generation, legacy offer conversion, tenant reads.

Endpoints:
  Generation   POST /api/v1/offers/generate
  Conversion   POST /api/v1/offers/convert
  Detail       GET  /api/v1/offers/<id>
  Works        GET  /api/v1/my-works

Every route runs in the calling principal's tenant scope.
Service layer owns all business logic and commits.
"""

from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify, request

from app import limiter
from app.ai.gateway import LLMGateway
from app.auth import current_principal, require_principal
from app.blueprints import paginated
from app.core.exceptions import NotFoundError, ValidationError
from app.services import offer_conversion_service, offer_service
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)

offer_bp = Blueprint("offer", __name__, url_prefix="/api/v1")

_offer_generate_limit = limiter.shared_limit("10/minute", scope="offer_generate")


# ── Lazy singletons stored on Flask app (test-isolation safe) ───────────────

def _get_gateway():
    if not hasattr(current_app, "_llm_gateway"):
        current_app._llm_gateway = LLMGateway()
    return current_app._llm_gateway


def _get_catalog_cache():
    return current_app.extensions.get("price_catalog_cache")


# ── Error handlers ────────────────────────────────────────────────────────────


@offer_bp.errorhandler(NotFoundError)
def _handle_not_found(error: NotFoundError):
    logger.info("Not found: %s", error)
    return api_error(E.NOT_FOUND, f"{error.resource} not found")


@offer_bp.errorhandler(ValidationError)
def _handle_validation(error: ValidationError):
    return api_error(E.VALIDATION_CONSTRAINT, str(error), details=error.details)


# ═════════════════════════════════════════════════════════════════════════
# Offers
# ═════════════════════════════════════════════════════════════════════════


@offer_bp.route("/offers/generate", methods=["POST"])
@require_principal
@_offer_generate_limit
def generate_offer():
    """Generate, price and save an offer from a free-text requirement.

    Body: {user_input, existing_items?}
    Returns: {success, work_id, requirement_id, offer_id, offer} (201).
    """
    data = request.get_json(silent=True) or {}
    user_input = (data.get("user_input") or "").strip()
    if not user_input:
        return api_error(E.VALIDATION_REQUIRED, "user_input is required")
    existing_items = data.get("existing_items") or []
    if not isinstance(existing_items, list):
        return api_error(E.VALIDATION_INVALID, "existing_items must be a list")

    result = offer_service.create_offer_from_text(
        user_input,
        principal=current_principal(),
        existing_items=existing_items,
        gateway=_get_gateway(),
        cache=_get_catalog_cache(),
    )
    if not result["success"]:
        return api_error(E.AI_FAILED, "Offer generation failed", details={"reason": result["error"]})
    return jsonify(result), 201


@offer_bp.route("/offers/convert", methods=["POST"])
@require_principal
def convert_offer():
    """Turn an offer prepared elsewhere into a Work → Requirement → Offer chain.

    Body: {title, location?, customerName?, estimatedTime?, description?,
           offerSummary?, totalPrice?, items[], notes[]?}
    """
    data = request.get_json(silent=True) or {}
    params = offer_conversion_service.ConvertOfferParams.from_dict(data)
    result = offer_conversion_service.convert_existing_offer(params, principal=current_principal())
    return jsonify(result), 201


@offer_bp.route("/offers/<int:offer_id>", methods=["GET"])
@require_principal
def get_offer(offer_id):
    offer = offer_service.get_offer(offer_id, current_principal().tenant_email)
    return jsonify(offer.to_dict()), 200


@offer_bp.route("/my-works", methods=["GET"])
@require_principal
def list_works():
    """Tenant's works, newest first. Query params: limit, offset."""
    query = offer_service.list_works_query(current_principal().tenant_email)
    return jsonify(paginated(query, lambda work: work.to_dict())), 200
