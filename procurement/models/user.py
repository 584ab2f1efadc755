"""
User, role and role-assignment models.

Users are created by invitation redemption or by an administrator. They are
never stored with a plaintext credential and are deactivated rather than
deleted once a purchase request references them.
"""
import uuid
from decimal import Decimal

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Numeric, Text, Uuid
from sqlalchemy.orm import relationship

from procurement.models.base import Base
from procurement.utils.dates import utcnow


class Role(Base):
    """Reference data: what a holder may approve, and up to which amount."""

    __tablename__ = "roles"

    id = Column(Uuid, primary_key=True, nullable=False, default=uuid.uuid4)
    name = Column(String(50), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    max_budget_limit = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    can_approve = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    def __repr__(self) -> str:
        return (
            f"<Role(id={self.id}, name='{self.name}', "
            f"can_approve={self.can_approve}, max_budget_limit={self.max_budget_limit})>"
        )


class UserRole(Base):
    """Assignment of a role to a user."""

    __tablename__ = "user_roles"

    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    role_id = Column(Uuid, ForeignKey("roles.id"), primary_key=True)
    assigned_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    assigned_by = Column(Uuid, ForeignKey("users.id"), nullable=True)


class User(Base):
    """
    User model representing system users.

    Approval authority comes from the user's roles; see
    ApprovalPolicy.
    """

    __tablename__ = "users"

    id = Column(Uuid, default=uuid.uuid4, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    hashed_password = Column(String(255), nullable=False)
    department_id = Column(Uuid, ForeignKey("departments.id"), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    roles = relationship(
        "Role",
        secondary="user_roles",
        primaryjoin="User.id == UserRole.user_id",
        secondaryjoin="Role.id == UserRole.role_id",
        lazy="selectin",
        viewonly=True,
        order_by="Role.name",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        """String representation of the User model."""
        return f"<User(id={self.id}, email='{self.email}', active={self.is_active})>"
