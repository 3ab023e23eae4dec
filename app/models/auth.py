"""
Auth Models — platform users.

Authentication itself is delegated to the hosted identity provider; this
table only mirrors the principal (by email) and carries the authorization
flags the back office cares about:

    is_tenant      — contractor account that owns a price list and offers
    is_super_user  — may view cross-tenant statistics and change roles
    invited_by     — tenant email a worker acts on behalf of
"""

from datetime import datetime, timezone

from app.models import db


# Role mutations accepted by the statistics dashboard → flag values
ROLE_TYPES = {
    "superuser": {"is_super_user": True, "is_tenant": True},
    "tenant": {"is_super_user": False, "is_tenant": True},
    "worker": {"is_super_user": False, "is_tenant": False},
}


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False, default="")
    email = db.Column(db.String(200), nullable=False, unique=True, index=True)
    role = db.Column(db.String(50), default="user")
    is_super_user = db.Column(db.Boolean, default=False, nullable=False)
    is_tenant = db.Column(db.Boolean, default=True, nullable=False)
    invited_by = db.Column(db.String(200), nullable=True, comment="Inviting tenant's email (workers)")
    trial_ends_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def role_type(self) -> str:
        """Dashboard role label derived from the two flags."""
        if self.is_super_user:
            return "superuser"
        if self.is_tenant:
            return "tenant"
        return "worker"

    @property
    def tenant_email(self) -> str:
        """Tenant scope this user works in."""
        if self.is_tenant or not self.invited_by:
            return self.email
        return self.invited_by

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "role_type": self.role_type,
            "is_super_user": self.is_super_user,
            "is_tenant": self.is_tenant,
            "invited_by": self.invited_by,
            "trial_ends_at": self.trial_ends_at.isoformat() if self.trial_ends_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
