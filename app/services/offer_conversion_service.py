"""
Offer conversion — an offer prepared elsewhere becomes a Work → Requirement → Offer chain.

No model call is made. Each item is only checked for existence in the
tenant's own price list; items missing from it are flagged new=True and
listed in the offer notes so the contractor can add them later.

Records are committed one by one as they are created. Errors propagate
to the caller.
"""

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from app.core.exceptions import ValidationError
from app.models import db
from app.models.pricing import TenantPriceList
from app.models.work import MyWork, Offer, Requirement
from app.services.item_reconciler import round_amount

logger = logging.getLogger(__name__)

NEW_ITEMS_HEADER = "\n=== Új tételek (még nincsenek a vállalkozói árlistában) ==="
CONVERTED_PREFIX = "Meglévő ajánlatból konvertálva."
_ROUNDED_FIELDS = ("unitPrice", "materialUnitPrice", "workTotal", "materialTotal", "totalPrice")


def _is_amount(value) -> bool:
    """Empty, a finite number, or a string Decimal can read as one."""
    if value is None or value == "":
        return True
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return False
    try:
        return Decimal(str(value)).is_finite()
    except InvalidOperation:
        return False


@dataclass
class ConvertOfferParams:
    title: str
    location: str = ""
    customer_name: str = ""
    estimated_time: str = ""
    description: str = ""
    offer_summary: str | None = None
    total_price: float = 0
    items: list = field(default_factory=list)
    notes: list = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "ConvertOfferParams":
        title = (data.get("title") or "").strip()
        if not title:
            raise ValidationError("title is required", details={"title": "required"})
        items = data.get("items") or []
        if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
            raise ValidationError("items must be a list of objects", details={"items": "invalid"})
        for i in items:
            if not str(i.get("name") or "").strip():
                raise ValidationError("every item needs a name", details={"items": "name required"})
            bad = [key for key in _ROUNDED_FIELDS if not _is_amount(i.get(key))]
            if bad:
                raise ValidationError("item amounts must be numbers",
                                      details={"item": str(i.get("name")), "fields": bad})
        if not _is_amount(data.get("totalPrice")):
            raise ValidationError("totalPrice must be a number", details={"totalPrice": "invalid"})
        notes = data.get("notes") or []
        if isinstance(notes, str):
            notes = [notes]
        return cls(
            title=title,
            location=data.get("location") or "",
            customer_name=data.get("customerName") or "",
            estimated_time=data.get("estimatedTime") or "",
            description=data.get("description") or "",
            offer_summary=data.get("offerSummary") or None,
            total_price=data.get("totalPrice") or 0,
            items=items,
            notes=[str(n) for n in notes],
        )


def clean_task_name(name: str) -> str:
    """Strip leading '*' markup and surrounding whitespace."""
    return re.sub(r'^\*+\s*', '', name or "").strip()


def _tenant_has_task(tenant_email: str, task: str) -> bool:
    return db.session.execute(
        db.select(TenantPriceList.id).where(
            TenantPriceList.tenant_email == tenant_email,
            TenantPriceList.task == task,
        )
    ).first() is not None


def mark_items(items: list, tenant_email: str) -> tuple[list, list]:
    """
    Round each item's price fields and flag items missing from the tenant price list.

    Returns:
        (marked_items, new_item_names)
    """
    marked = []
    new_names = []
    for item in items:
        rounded = dict(item)
        for key in _ROUNDED_FIELDS:
            rounded[key] = round_amount(item.get(key) or 0)

        cleaned = clean_task_name(item.get("name", ""))
        if _tenant_has_task(tenant_email, cleaned):
            marked.append(rounded)
            continue

        new_names.append(cleaned)
        rounded["name"] = cleaned
        rounded["new"] = True
        marked.append(rounded)
        logger.debug("New item, not in tenant price list: %s", cleaned)
    return marked, new_names


def convert_existing_offer(params: ConvertOfferParams, *, principal) -> dict:
    """
    Create Work → Requirement → Offer from an existing offer.

    Material/work totals are sums of the already rounded line values;
    the offer total is the caller's total, rounded.

    Returns:
        {"success": True, "work_id", "requirement_id", "offer_id"}
    """
    tenant_email = principal.tenant_email
    try:
        work = MyWork(
            title=f"{params.title} - {params.location}" if params.location else params.title,
            location=params.location or "",
            customer_name=params.customer_name or "Új ügyfél",
            time=params.estimated_time or "1-2 nap",
            total_price=params.total_price or 0,
            tenant_email=tenant_email,
        )
        db.session.add(work)
        db.session.commit()

        requirement = Requirement(
            title=f"Követelmény - {params.title}",
            description=f"{CONVERTED_PREFIX}\n\n{params.description or ''}",
            my_work_id=work.id,
            version_number=1,
            update_count=1,
            question_count=0,
        )
        db.session.add(requirement)
        db.session.commit()

        marked, new_names = mark_items(params.items, tenant_email)
        logger.info("%d new items out of %d", len(new_names), len(params.items),
                    extra={"tenant_email": tenant_email})

        notes = list(params.notes)
        if new_names:
            notes.append(NEW_ITEMS_HEADER)
            notes.extend(f"- {name}" for name in new_names)

        material_total = round_amount(sum(i["materialTotal"] for i in marked))
        work_total = round_amount(sum(i["workTotal"] for i in marked))

        offer = Offer(
            title=params.title,
            status="draft",
            requirement_id=requirement.id,
            tenant_email=tenant_email,
            total_price=round_amount(params.total_price),
            material_total=material_total,
            work_total=work_total,
            description=params.description or "",
            offer_summary=params.offer_summary or None,
            notes="\n".join(notes) if notes else None,
            items=marked,
            is_converted_from_existing=True,
        )
        db.session.add(offer)
        db.session.commit()
    except Exception:
        logger.exception("Offer conversion failed")
        db.session.rollback()
        raise

    logger.info("Offer converted: work=%s requirement=%s offer=%s",
                work.id, requirement.id, offer.id, extra={"tenant_email": tenant_email})
    return {
        "success": True,
        "work_id": work.id,
        "requirement_id": requirement.id,
        "offer_id": offer.id,
    }
