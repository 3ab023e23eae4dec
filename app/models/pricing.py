"""
Price list models — priced renovation tasks.

Two disjoint collections share one row shape:
    - TenantPriceList: a contractor's private prices (tenant-scoped)
    - PriceList:       the global list, visible to every tenant
                       (tenant_email is the empty string)

Identity key of an entry is (category, task); matching is case-sensitive.
The offer pipeline only reads these tables.
"""

from datetime import datetime, timezone

from app.models import db
from app.models.base import TenantModel

GLOBAL_TENANT_EMAIL = ""


class _PriceEntryMixin:
    """Columns shared by the tenant and global price lists."""

    id = db.Column(db.Integer, primary_key=True)
    category = db.Column(db.String(200), nullable=False, index=True)
    task = db.Column(db.String(300), nullable=False)
    unit = db.Column(db.String(50), nullable=False, default="db")
    labor_cost = db.Column(db.Float, nullable=False, default=0.0)
    material_cost = db.Column(db.Float, nullable=False, default=0.0)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self, include_prices=True):
        d = {
            "id": self.id,
            "category": self.category,
            "task": self.task,
            "unit": self.unit,
        }
        if include_prices:
            d["labor_cost"] = self.labor_cost
            d["material_cost"] = self.material_cost
        return d


class TenantPriceList(_PriceEntryMixin, TenantModel):
    """A contractor's own price for a task. Overrides the global entry."""

    __tablename__ = "tenant_price_list"
    __table_args__ = (
        db.UniqueConstraint("tenant_email", "task", name="tenant_task_unique"),
        db.Index("ix_tenant_price_list_tenant_category_task", "tenant_email", "category", "task"),
    )


class PriceList(_PriceEntryMixin, db.Model):
    """Global fallback price, shared by all tenants."""

    __tablename__ = "price_list"

    tenant_email = db.Column(db.String(200), nullable=False, default=GLOBAL_TENANT_EMAIL, index=True)

    __table_args__ = (
        db.Index("ix_price_list_category_task", "category", "task"),
    )
