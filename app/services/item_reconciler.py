"""
Item reconciliation — prices the model's proposed items from the catalogs.

Per item:
    source=tenant   tenant catalog, then global catalog
    source=global   global catalog only
    source=custom   no lookup

Matched items are priced from the catalog entry (new=False). Unmatched
items are returned as pending; apply_estimated_prices() prices them from
the estimation call (source="custom", new=True) and drops the ones the
estimate does not cover.

Line values stay unrounded here. ReconciledLineItem.to_dict() rounds each
monetary field when the line is serialized; offer totals are summed from
the unrounded values and rounded once (see totals()).
"""

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from app.ai.schemas import PriceEstimate, ProposedItem

logger = logging.getLogger(__name__)


def round_amount(value) -> int:
    """Round to whole currency units, halves away from zero (12.5 → 13)."""
    return int(Decimal(str(value or 0)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass
class ReconciledLineItem:
    name: str
    unit: str
    quantity: float
    unit_price: float
    material_unit_price: float
    source: str
    new: bool = False

    @property
    def work_total(self) -> float:
        return self.unit_price * self.quantity

    @property
    def material_total(self) -> float:
        return self.material_unit_price * self.quantity

    @property
    def total_price(self) -> float:
        return self.work_total + self.material_total

    @classmethod
    def priced(cls, item: ProposedItem, labor_cost, material_cost, *, source: str, new: bool):
        return cls(
            name=item.task,
            unit=item.unit,
            quantity=item.quantity or 0,
            unit_price=labor_cost or 0,
            material_unit_price=material_cost or 0,
            source=source,
            new=new,
        )

    def to_dict(self) -> dict:
        """Persisted shape; monetary fields rounded to whole currency units."""
        return {
            "name": self.name,
            "unit": self.unit,
            "quantity": self.quantity,
            "unitPrice": round_amount(self.unit_price),
            "materialUnitPrice": round_amount(self.material_unit_price),
            "workTotal": round_amount(self.work_total),
            "materialTotal": round_amount(self.material_total),
            "totalPrice": round_amount(self.total_price),
            "source": self.source,
            "new": self.new,
        }


@dataclass
class ReconciliationResult:
    items: list = field(default_factory=list)
    pending_custom: list = field(default_factory=list)


def _lookup(item: ProposedItem, tenant_catalog: dict, global_catalog: dict):
    key = (item.category, item.task)
    if item.source == "tenant":
        return tenant_catalog.get(key) or global_catalog.get(key)
    if item.source == "global":
        return global_catalog.get(key)
    return None


def reconcile_items(proposed: list, tenant_catalog: dict, global_catalog: dict) -> ReconciliationResult:
    """
    Price proposed items from the catalogs.

    Args:
        proposed: ProposedItem list, in model order.
        tenant_catalog / global_catalog: (category, task) → CatalogEntry.

    Returns:
        ReconciliationResult with matched lines (model order) and the
        items still needing a price estimate.
    """
    result = ReconciliationResult()
    for item in proposed:
        match = _lookup(item, tenant_catalog, global_catalog)
        if match is None:
            result.pending_custom.append(item)
            logger.debug("Needs price estimation: %s", item.task)
            continue
        result.items.append(ReconciledLineItem.priced(
            item, match.labor_cost, match.material_cost, source=item.source, new=False,
        ))

    logger.info("Reconciled %d items, %d need price estimation",
                len(result.items), len(result.pending_custom))
    return result


def apply_estimated_prices(pending: list, prices: list[PriceEstimate]) -> list[ReconciledLineItem]:
    """Price pending items by exact task name; items without an estimate are dropped."""
    by_task = {}
    for p in prices:
        by_task.setdefault(p.task, p)

    priced = []
    for item in pending:
        estimate = by_task.get(item.task)
        if estimate is None:
            logger.warning("No price estimate for custom item, dropped: %s", item.task)
            continue
        priced.append(ReconciledLineItem.priced(
            item, estimate.labor_cost, estimate.material_cost, source="custom", new=True,
        ))
    return priced


def totals(items: list[ReconciledLineItem]) -> dict:
    """Offer-level sums from the unrounded line values, rounded once."""
    material_total = sum(i.material_total for i in items)
    work_total = sum(i.work_total for i in items)
    return {
        "material_total": round_amount(material_total),
        "work_total": round_amount(work_total),
        "total_price": round_amount(material_total + work_total),
    }
