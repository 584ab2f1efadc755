"""
Audit log model for tracking procurement commands.

Records are written in the same unit of work as the change they describe, so
an audit entry exists exactly when its change was committed.
"""

import uuid

from sqlalchemy import Column, String, DateTime, JSON, ForeignKey, Uuid

from procurement.models.base import Base
from procurement.utils.dates import utcnow


class AuditLog(Base):
    """
    Audit log model tracking system actions.

    Records approvals, reservations, onboarding and reference-data changes.
    """

    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(String(50), nullable=False)  # CREATE, APPROVE, RESERVE, ...
    resource_type = Column(String(50), nullable=False)  # PURCHASE_REQUEST, BUDGET, ...
    resource_id = Column(String(50), nullable=True, index=True)
    details = Column(JSON, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(255), nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def __repr__(self):
        """String representation of the AuditLog model."""
        return (
            f"<AuditLog(id={self.id}, action='{self.action}', "
            f"resource_type='{self.resource_type}', user_id={self.user_id})>"
        )
