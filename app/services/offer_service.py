"""
Offer service — AI offer generation and the Work → Requirement → Offer chain.

    create_offer_from_text   full pipeline; never raises, returns a result dict
    persist_generated_offer  single-transaction write of the three records
    build_offer_notes        notes text stored on the generated offer
    get_offer / list_works   tenant-scoped reads
"""

import logging
from datetime import datetime, timedelta, timezone

from flask import current_app, has_app_context
from sqlalchemy.exc import SQLAlchemyError

from app.ai.assistants.offer_generator import GeneratedOffer, OfferGenerator
from app.core.exceptions import NotFoundError, ValidationError
from app.models import db
from app.models.work import MyWork, Offer, Requirement
from app.services.item_reconciler import totals

logger = logging.getLogger(__name__)

DEFAULT_VALIDITY_DAYS = 30


def build_offer_notes(location: str, user_input: str, custom_items: list, questions: list) -> str:
    """Location, requirement text, custom items with reasons, numbered questions."""
    notes = f"{location}\n\n{user_input}\n\n"

    if custom_items:
        notes += "További információ:\n\n"
        for item in custom_items:
            notes += f"A következő tétel nem volt az adatbázisban: '{item.task} (egyedi tétel)'.\n\n"
            notes += f"Indoklás: {item.custom_reason or 'Egyedi tétel'}\n\n"

    if questions:
        notes += "Tisztázandó kérdések:\n\n"
        for i, question in enumerate(questions, 1):
            notes += f"{i}. {question}\n\n"

    return notes


def persist_generated_offer(generated: GeneratedOffer, *, user_input: str, tenant_email: str,
                            validity_days: int | None = None) -> tuple[MyWork, Requirement, Offer]:
    """
    Write Work → Requirement → Offer in one transaction.

    Totals are recomputed from the reconciled items. On any failure the
    session is rolled back and the error re-raised; nothing is left behind.
    """
    if validity_days is None:
        validity_days = (
            current_app.config.get("OFFER_VALIDITY_DAYS", DEFAULT_VALIDITY_DAYS)
            if has_app_context() else DEFAULT_VALIDITY_DAYS
        )

    draft = generated.draft
    sums = totals(generated.items)
    notes = build_offer_notes(draft.location, user_input, generated.custom_items, draft.questions)
    now = datetime.now(timezone.utc)

    try:
        work = MyWork(
            title=draft.title,
            customer_name=draft.customer_name,
            date=now,
            location=draft.location,
            time=draft.estimated_time,
            total_price=sums["total_price"],
            tenant_email=tenant_email,
        )
        db.session.add(work)
        db.session.flush()

        requirement = Requirement(
            title=f"Követelmény - {draft.title}",
            description=user_input,
            my_work_id=work.id,
            version_number=1,
            update_count=1,
            question_count=len(draft.questions),
        )
        db.session.add(requirement)
        db.session.flush()

        offer = Offer(
            title=draft.title,
            description=notes,
            location=draft.location,
            total_price=sums["total_price"],
            material_total=sums["material_total"],
            work_total=sums["work_total"],
            status="draft",
            requirement_id=requirement.id,
            items=[item.to_dict() for item in generated.items],
            tenant_email=tenant_email,
            offer_summary=draft.offer_summary,
            estimated_duration=draft.estimated_time,
            valid_until=now + timedelta(days=validity_days),
        )
        db.session.add(offer)
        db.session.flush()

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("Offer chain saved: work=%s requirement=%s offer=%s total=%s",
                work.id, requirement.id, offer.id, offer.total_price,
                extra={"tenant_email": tenant_email})
    return work, requirement, offer


def _save_usage_logs():
    """Commit the AI usage rows written during generation.

    Nothing else is pending at this point; the rows must outlive a failed
    generation or a rolled-back offer chain.
    """
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Failed to save AI usage logs: %s", e)


def create_offer_from_text(user_input: str, *, principal, existing_items: list | None = None,
                           gateway=None, cache=None) -> dict:
    """
    Turn a free-text requirement into a persisted, priced offer.

    Every failure is caught here and reported as {"success": False, "error": ...}.

    Returns:
        {"success": True, "work_id", "requirement_id", "offer_id", "offer"}
        where "offer" is the model's offer object as returned.
    """
    try:
        if not user_input or not user_input.strip():
            raise ValidationError("user_input is required")

        generator = OfferGenerator(gateway=gateway, cache=cache)
        try:
            generated = generator.generate(
                user_input,
                tenant_email=principal.tenant_email,
                user=principal.email,
                existing_items=existing_items or [],
            )
        finally:
            _save_usage_logs()
        work, requirement, offer = persist_generated_offer(
            generated, user_input=user_input, tenant_email=principal.tenant_email,
        )
    except Exception as e:
        logger.exception("Offer generation failed: %s", e)
        return {"success": False, "error": str(e)}

    return {
        "success": True,
        "work_id": work.id,
        "requirement_id": requirement.id,
        "offer_id": offer.id,
        "offer": generated.draft.raw,
    }


def get_offer(offer_id: int, tenant_email: str) -> Offer:
    """Tenant-scoped lookup. Raises NotFoundError for missing or foreign offers."""
    offer = db.session.execute(
        db.select(Offer).where(Offer.id == offer_id, Offer.tenant_email == tenant_email)
    ).scalar_one_or_none()
    if offer is None:
        raise NotFoundError(resource="Offer", resource_id=offer_id, tenant_email=tenant_email)
    return offer


def list_works_query(tenant_email: str):
    """Query of the tenant's works, newest first (paged by the blueprint)."""
    return MyWork.query_for_tenant(tenant_email).order_by(MyWork.created_at.desc(), MyWork.id.desc())
