"""Price catalog blueprint — merged tenant + global catalog.

    GET /api/v1/price-catalog?category=Burkolás&category=Festés
"""

from flask import Blueprint, current_app, jsonify, request

from app.auth import current_principal, require_principal
from app.services.price_catalog_service import load_price_catalog

price_catalog_bp = Blueprint("price_catalog", __name__, url_prefix="/api/v1")


@price_catalog_bp.route("/price-catalog", methods=["GET"])
@require_principal
def get_price_catalog():
    """Tenant entries win over global entries with the same (category, task)."""
    categories = request.args.getlist("category") or None
    catalog = load_price_catalog(
        current_principal().tenant_email,
        categories,
        cache=current_app.extensions.get("price_catalog_cache"),
    )
    items = [entry.to_dict() for entry in catalog.values()]
    return jsonify({"items": items, "total": len(items)}), 200
