"""
Typed error kinds for the procurement core.

Every command fails with one of these instead of returning partial data or a
silent default. Each class carries a machine-readable ``code`` and the HTTP
status the API layer renders it with; instances carry structured context in
attributes so callers never have to parse messages.

    ProcurementError
    +-- NotFound
    +-- ConstraintViolation
    +-- ValidationFailed
    +-- InvalidTransition
    +-- Unauthorized
    +-- InsufficientFunds
    +-- Expired
    +-- AlreadyUsed
    +-- DuplicateInvitation
    +-- ConcurrentModification
    +-- StoreUnavailable
"""

from decimal import Decimal
from typing import Any, Dict, Optional


class ProcurementError(Exception):
    """Base exception for all procurement core errors."""

    code: str = "PROCUREMENT_ERROR"
    status_code: int = 400

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = context
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable payload for API responses and logs."""
        payload: Dict[str, Any] = {"error": self.code, "detail": self.message}
        for key, value in self.context.items():
            payload[key] = str(value) if value is not None else None
        return payload


class NotFound(ProcurementError):
    """A record with the given key does not exist."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, key: Any):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found: {key}", entity=entity, key=key)


class ConstraintViolation(ProcurementError):
    """Unique-key or foreign-key breach, or a referential guard refusing a delete."""

    code = "CONSTRAINT_VIOLATION"
    status_code = 409


class ValidationFailed(ProcurementError):
    """Input failed a domain validation rule."""

    code = "VALIDATION_FAILED"
    status_code = 422

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message, field=field)


class InvalidTransition(ProcurementError):
    """The requested status change is not an edge of the lifecycle."""

    code = "INVALID_TRANSITION"
    status_code = 409

    def __init__(self, entity: str, key: Any, current: str, target: str):
        self.entity = entity
        self.key = key
        self.current = current
        self.target = target
        super().__init__(
            f"{entity} {key} cannot move from {current} to {target}",
            entity=entity, key=key, current=current, target=target,
        )


class Unauthorized(ProcurementError):
    """The actor is not allowed to perform this command."""

    code = "UNAUTHORIZED"
    status_code = 403

    def __init__(self, actor_id: Any, reason: str):
        self.actor_id = actor_id
        self.reason = reason
        super().__init__(reason, actor_id=actor_id)


class InsufficientFunds(ProcurementError):
    """The budget's remaining amount cannot cover the reservation."""

    code = "INSUFFICIENT_FUNDS"
    status_code = 409

    def __init__(self, budget_id: Any, requested: Decimal, available: Optional[Decimal]):
        self.budget_id = budget_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient funds in budget {budget_id}: requested {requested}, available {available}",
            budget_id=budget_id, requested=requested, available=available,
        )


class Expired(ProcurementError):
    """The invitation is past its expiry."""

    code = "EXPIRED"
    status_code = 410

    def __init__(self, token_hint: str, expires_at: Any):
        self.expires_at = expires_at
        super().__init__(f"Invitation {token_hint} expired at {expires_at}", expires_at=expires_at)


class AlreadyUsed(ProcurementError):
    """The invitation was already accepted or cancelled."""

    code = "ALREADY_USED"
    status_code = 409

    def __init__(self, token_hint: str, status: str):
        self.status = status
        super().__init__(f"Invitation {token_hint} is no longer pending ({status})", status=status)


class DuplicateInvitation(ProcurementError):
    """A live pending invitation already exists for this email."""

    code = "DUPLICATE_INVITATION"
    status_code = 409

    def __init__(self, email: str, existing_id: Any):
        self.email = email
        self.existing_id = existing_id
        super().__init__(
            f"A pending invitation already exists for {email}",
            email=email, existing_id=existing_id,
        )


class ConcurrentModification(ProcurementError):
    """The record changed between read and write."""

    code = "CONCURRENT_MODIFICATION"
    status_code = 409

    def __init__(self, entity: str, key: Any, expected: str):
        self.entity = entity
        self.key = key
        self.expected = expected
        super().__init__(
            f"{entity} {key} changed concurrently (expected {expected})",
            entity=entity, key=key, expected=expected,
        )


class StoreUnavailable(ProcurementError):
    """The backing store timed out or refused the connection."""

    code = "STORE_UNAVAILABLE"
    status_code = 503
