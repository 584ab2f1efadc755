"""
Department model for the procurement system.
Departments own budgets, employ users and raise purchase requests.
"""
import uuid

from sqlalchemy import Column, String, DateTime, Text, Boolean, Uuid

from procurement.models.base import Base
from procurement.utils.dates import utcnow


class Department(Base):
    """
    Department model representing a university department.

    Deletion is refused while budgets, users or purchase requests still
    reference the department; see DepartmentService.delete.
    """

    __tablename__ = "departments"

    id = Column(Uuid, primary_key=True, nullable=False, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True, index=True)
    code = Column(String(20), nullable=True, unique=True, index=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    def __repr__(self) -> str:
        """String representation of the Department model."""
        return f"<Department(id={self.id}, name='{self.name}', code='{self.code}')>"
