"""
Price catalog loading — tenant price list merged over the global one.

    load_split_catalog   tenant and global mappings kept apart (reconciliation)
    load_price_catalog   merged view, tenant entry wins wholesale
    load_task_catalog    ordered task lists without prices (prompt)

Mappings are keyed by (category, task), exact and case-sensitive.
"""

import logging
from dataclasses import dataclass

from app.models import db
from app.models.pricing import GLOBAL_TENANT_EMAIL, PriceList, TenantPriceList
from app.services.cache_service import PriceCatalogCache, catalog_cache_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogEntry:
    category: str
    task: str
    unit: str
    labor_cost: float | None
    material_cost: float | None
    source: str

    def to_dict(self, include_prices: bool = True) -> dict:
        d = {"category": self.category, "task": self.task, "unit": self.unit, "source": self.source}
        if include_prices:
            d["labor_cost"] = self.labor_cost
            d["material_cost"] = self.material_cost
        return d


def _query_entries(model, tenant_email: str, categories, source: str,
                   include_prices: bool) -> dict[tuple, CatalogEntry]:
    stmt = db.select(model).where(model.tenant_email == tenant_email)
    if categories is not None:
        stmt = stmt.where(model.category.in_(list(categories)))
    stmt = stmt.order_by(model.category.asc(), model.task.asc())

    entries = {}
    for row in db.session.execute(stmt).scalars():
        entries[(row.category, row.task)] = CatalogEntry(
            category=row.category,
            task=row.task,
            unit=row.unit,
            labor_cost=row.labor_cost if include_prices else None,
            material_cost=row.material_cost if include_prices else None,
            source=source,
        )
    return entries


def load_split_catalog(tenant_email: str, categories=None, *, include_prices: bool = True,
                       cache: PriceCatalogCache | None = None) -> tuple[dict, dict]:
    """
    Load the tenant and the global catalog, restricted to categories.

    Args:
        tenant_email: Tenant scope.
        categories: Iterable of category names; None loads everything.
            An empty iterable yields two empty mappings.
        include_prices: False leaves labor_cost/material_cost as None.
        cache: Optional PriceCatalogCache.

    Returns:
        (tenant_mapping, global_mapping), each (category, task) → CatalogEntry.
    """
    if categories is not None:
        categories = [c for c in categories if c]
        if not categories:
            return {}, {}

    def _load():
        tenant = _query_entries(TenantPriceList, tenant_email, categories, "tenant", True)
        global_ = _query_entries(PriceList, GLOBAL_TENANT_EMAIL, categories, "global", True)
        logger.info("Price catalog loaded: %d tenant + %d global entries", len(tenant), len(global_),
                    extra={"tenant_email": tenant_email})
        return tenant, global_

    if cache is not None:
        tenant, global_ = cache.get_or_load(catalog_cache_key(tenant_email, categories), _load)
    else:
        tenant, global_ = _load()

    if not include_prices:
        tenant = {k: _without_prices(e) for k, e in tenant.items()}
        global_ = {k: _without_prices(e) for k, e in global_.items()}
    return tenant, global_


def _without_prices(entry: CatalogEntry) -> CatalogEntry:
    return CatalogEntry(entry.category, entry.task, entry.unit, None, None, entry.source)


def load_price_catalog(tenant_email: str, categories=None, *, include_prices: bool = True,
                       cache: PriceCatalogCache | None = None) -> dict[tuple, CatalogEntry]:
    """Merged catalog: global entries first, tenant entries overwrite them wholesale."""
    tenant, global_ = load_split_catalog(
        tenant_email, categories, include_prices=include_prices, cache=cache,
    )
    merged = dict(global_)
    merged.update(tenant)
    return dict(sorted(merged.items()))


def load_task_catalog(tenant_email: str, *, cache: PriceCatalogCache | None = None) -> tuple[list, list]:
    """Tenant and global task lists, without prices, in (category, task) order."""
    tenant, global_ = load_split_catalog(tenant_email, None, include_prices=False, cache=cache)
    return (
        [e.to_dict(include_prices=False) for e in tenant.values()],
        [e.to_dict(include_prices=False) for e in global_.values()],
    )
