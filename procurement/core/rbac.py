"""
Role-based authorization for procurement commands.

Authority comes from the Role reference data assigned to a user: a role with
``can_approve`` may approve or reject, up to its ``max_budget_limit``. The
actor is always passed in explicitly; nothing here reads an ambient user.
"""

from decimal import Decimal
from typing import List, Sequence, Tuple
from uuid import UUID

from sqlalchemy import inspect, select

from procurement.core.exceptions import Unauthorized
from procurement.core.logging import logger
from procurement.db.store import LedgerStore
from procurement.models.purchase_request import PurchaseRequest
from procurement.models.user import Role, User, UserRole


class ApprovalPolicy:
    """Authorization policies for purchase request commands."""

    @staticmethod
    def is_approver(roles: Sequence[Role]) -> bool:
        return any(role.can_approve for role in roles)

    @staticmethod
    def can_approve_amount(roles: Sequence[Role], amount: Decimal) -> bool:
        """
        Check if any role may approve a request of this amount.

        Args:
            roles: Roles held by the approver
            amount: Request amount

        Returns:
            True if one role has can_approve and a limit covering the amount
        """
        return any(
            role.can_approve and Decimal(role.max_budget_limit) >= Decimal(amount)
            for role in roles
        )

    @staticmethod
    def can_manage_request(user: User, roles: Sequence[Role], request: PurchaseRequest) -> bool:
        """The requester and any approver may start or cancel a request."""
        return user.id == request.requester_id or ApprovalPolicy.is_approver(roles)


def actor_id_of(user: User) -> UUID:
    """
    Primary key of an acting user, read from its identity key.

    The identity key survives a rollback, so this never triggers a load on an
    expired instance.
    """
    identity = inspect(user).identity
    if identity is not None:
        return identity[0]
    return user.id


async def roles_of(store: LedgerStore, user_id: UUID) -> List[Role]:
    statement = (
        select(Role)
        .join(UserRole, UserRole.role_id == Role.id)
        .where(UserRole.user_id == user_id)
        .order_by(Role.name)
    )
    result = await store.execute(statement, "load roles")
    return list(result.scalars().all())


async def load_active_actor(store: LedgerStore, actor_id: UUID) -> Tuple[User, List[Role]]:
    """
    Read the actor's current state and roles from the store.

    Raises:
        Unauthorized: The actor does not exist or is deactivated
    """
    user = await store.find(User, User.id == actor_id)
    if user is None:
        logger.warning(f"Unknown actor: {actor_id}")
        raise Unauthorized(actor_id, "Unknown actor")
    if not user.is_active:
        logger.warning(f"Inactive actor refused: {actor_id}")
        raise Unauthorized(actor_id, "Actor is deactivated")
    return user, await roles_of(store, actor_id)
