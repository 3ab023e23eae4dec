"""
TenantModel — Abstract base class for tenant-scoped models.

A tenant is a contractor account, identified by the account owner's email
exactly as the identity provider reports it. All models that hold a
contractor's private data inherit from TenantModel instead of db.Model
directly. This adds:
  - tenant_email column with index
  - query_for_tenant(tenant_email) classmethod
"""

from app.models import db


class TenantModel(db.Model):
    """Abstract base for tenant-scoped tables."""
    __abstract__ = True

    tenant_email = db.Column(db.String(200), nullable=False, index=True)

    @classmethod
    def query_for_tenant(cls, tenant_email):
        """Return a query filtered by tenant_email."""
        return cls.query.filter_by(tenant_email=tenant_email)
