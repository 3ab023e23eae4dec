"""
Work chain models — MyWork → Requirement → Offer.

    MyWork       root record of a job for a customer
    Requirement  the customer's textual need, owned by exactly one MyWork
    Offer        priced quote, owned by exactly one Requirement

Offer.items holds the ordered line items as JSON:
    {name, unit, quantity, unitPrice, materialUnitPrice, workTotal,
     materialTotal, totalPrice, source, new}
"""

import uuid
from datetime import datetime, timezone

from app.models import db
from app.models.base import TenantModel


class MyWork(TenantModel):
    __tablename__ = "my_works"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(300), nullable=False)
    location = db.Column(db.String(300), default="")
    customer_name = db.Column(db.String(200), default="")
    date = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    time = db.Column(db.String(50), comment="Estimated duration, e.g. '3-5 nap'")
    total_price = db.Column(db.Float, default=0.0)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    requirements = db.relationship(
        "Requirement", back_populates="my_work", lazy="dynamic", cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "location": self.location,
            "customer_name": self.customer_name,
            "date": self.date.isoformat() if self.date else None,
            "time": self.time,
            "total_price": self.total_price,
            "tenant_email": self.tenant_email,
        }


class Requirement(db.Model):
    __tablename__ = "requirements"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    my_work_id = db.Column(
        db.Integer, db.ForeignKey("my_works.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    version_number = db.Column(db.Integer, nullable=False, default=1)
    update_count = db.Column(db.Integer, nullable=False, default=1)
    question_count = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    my_work = db.relationship("MyWork", back_populates="requirements")
    offers = db.relationship(
        "Offer", back_populates="requirement", lazy="dynamic", cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "my_work_id": self.my_work_id,
            "version_number": self.version_number,
            "update_count": self.update_count,
            "question_count": self.question_count,
        }


class Offer(TenantModel):
    __tablename__ = "offers"

    id = db.Column(db.Integer, primary_key=True)
    record_id = db.Column(db.String(36), default=lambda: str(uuid.uuid4()), index=True)
    title = db.Column(db.String(300), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="draft")
    requirement_id = db.Column(
        db.Integer, db.ForeignKey("requirements.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    description = db.Column(db.Text, default="")
    location = db.Column(db.String(300), default="")
    total_price = db.Column(db.Float, default=0.0)
    material_total = db.Column(db.Float, default=0.0)
    work_total = db.Column(db.Float, default=0.0)
    items = db.Column(db.JSON, default=list)
    notes = db.Column(db.Text, nullable=True)
    offer_summary = db.Column(db.Text, nullable=True)
    estimated_duration = db.Column(db.String(50), nullable=True)
    valid_until = db.Column(db.DateTime(timezone=True), nullable=True)
    is_converted_from_existing = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    requirement = db.relationship("Requirement", back_populates="offers")

    def to_dict(self):
        return {
            "id": self.id,
            "record_id": self.record_id,
            "title": self.title,
            "status": self.status,
            "requirement_id": self.requirement_id,
            "description": self.description,
            "location": self.location,
            "total_price": self.total_price,
            "material_total": self.material_total,
            "work_total": self.work_total,
            "items": self.items or [],
            "notes": self.notes,
            "offer_summary": self.offer_summary,
            "estimated_duration": self.estimated_duration,
            "valid_until": self.valid_until.isoformat() if self.valid_until else None,
            "is_converted_from_existing": self.is_converted_from_existing,
            "tenant_email": self.tenant_email,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
