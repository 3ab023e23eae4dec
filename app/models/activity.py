"""
Activity models — History and Billing.

History rows are written by the product's AI agents and file uploads;
the statistics dashboard counts them per user. A row belongs to a user
either as the acting user (user_email) or as the tenant it was recorded
for (tenant_email).

Billing rows are only counted here.
"""

from datetime import datetime, timezone

from app.models import db
from app.models.base import TenantModel


class History(db.Model):
    __tablename__ = "history"

    id = db.Column(db.Integer, primary_key=True)
    user_email = db.Column(db.String(200), nullable=True, index=True)
    tenant_email = db.Column(db.String(200), nullable=True, index=True)
    content = db.Column(db.JSON, nullable=True)
    ai_agent_type = db.Column(db.String(100), nullable=True)
    file_type = db.Column(db.String(50), nullable=True)
    file_name = db.Column(db.String(300), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True,
    )

    def to_dict(self):
        return {
            "id": self.id,
            "content": self.content,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "ai_agent_type": self.ai_agent_type,
            "file_type": self.file_type,
            "file_name": self.file_name,
        }


class Billing(TenantModel):
    __tablename__ = "billings"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(300), nullable=False)
    total_price = db.Column(db.Float, default=0.0)
    status = db.Column(db.String(20), default="draft")
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
