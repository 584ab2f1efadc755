"""
Audit logging utilities.

Audit records are added to the caller's session without committing, so they
become visible together with the change they describe or not at all.
"""

from typing import Any, Dict, Optional
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from procurement.core.config import settings
from procurement.core.logging import logger
from procurement.models.audit import AuditLog


def serialize_for_json(obj: Any) -> Any:
    """
    Convert an object to a JSON-serializable format.

    Args:
        obj: Object to serialize

    Returns:
        JSON-serializable representation of the object
    """
    if obj is None:
        return None
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, uuid.UUID):
        return str(obj)
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, (int, float, str, bool)):
        return obj
    if isinstance(obj, dict):
        return {str(k): serialize_for_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [serialize_for_json(item) for item in obj]
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    return str(obj)


def log_action(
    db: AsyncSession,
    action: str,
    resource_type: str,
    resource_id: Optional[Any] = None,
    details: Optional[Dict[str, Any]] = None,
    user_id: Optional[uuid.UUID] = None,
    client: Optional[Dict[str, Optional[str]]] = None,
) -> Optional[AuditLog]:
    """
    Stage an audit log entry in the current unit of work.

    Args:
        db: Database session
        action: Action performed (CREATE, APPROVE, RESERVE, ...)
        resource_type: Type of resource affected
        resource_id: ID of the resource affected
        details: Additional details about the action
        user_id: ID of the acting user
        client: Client IP and user agent, as produced by get_request_client

    Returns:
        The staged entry, or None when audit logging is disabled
    """
    if not settings.enable_audit_logs:
        return None

    logger.debug(f"Staging audit log: {action} on {resource_type} {resource_id} by user {user_id}")
    client = client or {}
    audit_log = AuditLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        details=serialize_for_json(details) if details else None,
        ip_address=client.get("ip_address"),
        user_agent=client.get("user_agent"),
    )
    db.add(audit_log)
    return audit_log
