"""
Invitation model.

An invitation is redeemed at most once into a User; it is indexed by its
unique token so redemption is a single keyed lookup. At most one Pending
invitation exists per email.
"""

import uuid
from enum import Enum as PyEnum

from sqlalchemy import Column, String, DateTime, ForeignKey, Enum, Index, JSON, Uuid, text

from procurement.models.base import Base
from procurement.utils.dates import utcnow


class InvitationStatus(str, PyEnum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    EXPIRED = "Expired"
    CANCELLED = "Cancelled"


class Invitation(Base):
    """Pending onboarding of one person into a department with a set of roles."""

    __tablename__ = "invitations"
    __table_args__ = (
        Index(
            "uq_invitations_pending_email",
            "email",
            unique=True,
            postgresql_where=text("status = 'Pending'"),
            sqlite_where=text("status = 'Pending'"),
        ),
    )

    id = Column(Uuid, primary_key=True, nullable=False, default=uuid.uuid4)
    email = Column(String(255), nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    department_id = Column(Uuid, ForeignKey("departments.id"), nullable=False)
    role_ids = Column(JSON, nullable=False, default=list)
    token = Column(String(128), nullable=False, unique=True, index=True)
    invited_by = Column(Uuid, ForeignKey("users.id"), nullable=False)
    status = Column(
        Enum(InvitationStatus, values_callable=lambda e: [m.value for m in e],
             native_enum=False, length=20, name="invitation_status"),
        nullable=False,
        default=InvitationStatus.PENDING,
    )
    expires_at = Column(DateTime(timezone=True), nullable=False)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Invitation(id={self.id}, email='{self.email}', status='{self.status}')>"
