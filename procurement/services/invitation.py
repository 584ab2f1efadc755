"""
Service layer for invitations and onboarding.

An invitation names a person, a department and a set of roles. Redeeming it
with a credential turns it into exactly one User; redemptions of the same
token are serialized, and the Pending -> Accepted step is a compare-and-swap,
so a second redemption observes AlreadyUsed.
"""

from datetime import timedelta
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession

from procurement.core.config import settings
from procurement.core.exceptions import (
    AlreadyUsed,
    ConstraintViolation,
    DuplicateInvitation,
    Expired,
    InvalidTransition,
    NotFound,
    ValidationFailed,
)
from procurement.core.locks import invitation_locks
from procurement.core.logging import logger
from procurement.core.rbac import actor_id_of, load_active_actor
from procurement.core.security import PasswordManager, SecurityUtils
from procurement.db.audit import log_action
from procurement.db.store import LedgerStore, with_store_retry
from procurement.models.department import Department
from procurement.models.invitation import Invitation, InvitationStatus
from procurement.models.user import Role, User, UserRole
from procurement.schemas.invitation import InvitationCreate
from procurement.utils.dates import as_utc, utcnow

ClientInfo = Optional[Dict[str, Optional[str]]]


class InvitationService:
    """Service class for invitation operations."""

    @staticmethod
    @with_store_retry
    async def issue(
        db: AsyncSession,
        invite: InvitationCreate,
        issuer: User,
        client: ClientInfo = None,
    ) -> Invitation:
        """
        Issue a Pending invitation with a fresh token.

        Args:
            db: Database session
            invite: Invitee details, department and roles
            issuer: Acting user

        Returns:
            Created invitation, including its token

        Raises:
            NotFound: The department or one of the roles does not exist
            ConstraintViolation: A user with this email already exists
            DuplicateInvitation: A live Pending invitation exists for the email
        """
        email = invite.email.lower()
        issuer_id = actor_id_of(issuer)
        logger.info(f"Issuing invitation for {email} by user {issuer_id}")
        store = LedgerStore(db)

        async with invitation_locks.hold(("email", email)):
            async with store.unit_of_work():
                user, _ = await load_active_actor(store, issuer_id)
                await store.get(Department, invite.department_id)
                for role_id in invite.role_ids:
                    await store.get(Role, role_id)

                if await store.exists(User, func.lower(User.email) == email):
                    logger.warning(f"Invitation refused, user already exists: {email}")
                    raise ConstraintViolation(f"A user with email {email} already exists", email=email)

                # Expiring first takes the write lock, so the check below sees
                # every invitation committed by another worker.
                now = utcnow()
                await store.execute(
                    update(Invitation)
                    .where(
                        Invitation.email == email,
                        Invitation.status == InvitationStatus.PENDING,
                        Invitation.expires_at <= now,
                    )
                    .values(status=InvitationStatus.EXPIRED)
                    .execution_options(synchronize_session=False),
                    "expire stale invitations",
                )
                existing = await store.find(
                    Invitation,
                    Invitation.email == email,
                    Invitation.status == InvitationStatus.PENDING,
                    for_update=True,
                )
                if existing is not None:
                    logger.warning(f"Duplicate invitation for {email}: {existing.id}")
                    raise DuplicateInvitation(email, existing.id)

                invitation = Invitation(
                    email=email,
                    first_name=invite.first_name,
                    last_name=invite.last_name,
                    department_id=invite.department_id,
                    role_ids=[str(role_id) for role_id in invite.role_ids],
                    token=SecurityUtils.generate_invitation_token(),
                    invited_by=user.id,
                    status=InvitationStatus.PENDING,
                    expires_at=now + timedelta(days=settings.invitation.ttl_days),
                )
                try:
                    await store.put(invitation)
                except ConstraintViolation as e:
                    logger.warning(f"Duplicate invitation for {email} issued concurrently")
                    raise DuplicateInvitation(email, None) from e
                log_action(
                    db,
                    action="INVITE",
                    resource_type="INVITATION",
                    resource_id=invitation.id,
                    details={"email": email, "department_id": invite.department_id, "role_ids": invite.role_ids},
                    user_id=user.id,
                    client=client,
                )

        logger.info(f"Issued invitation {invitation.id} for {email}, expires {invitation.expires_at}")
        return invitation

    @staticmethod
    async def get(db: AsyncSession, invitation_id: UUID) -> Invitation:
        return await LedgerStore(db).get(Invitation, invitation_id)

    @staticmethod
    async def get_by_token(db: AsyncSession, token: str) -> Invitation:
        """
        Look up an invitation for the registration page.

        Raises:
            NotFound: No invitation has this token
        """
        logger.debug(f"Getting invitation by token {SecurityUtils.token_hint(token)}")
        invitation = await LedgerStore(db).find(Invitation, Invitation.token == token)
        if invitation is None:
            raise NotFound("Invitation", SecurityUtils.token_hint(token))
        return invitation

    @staticmethod
    async def list(db: AsyncSession, status: Optional[InvitationStatus] = None) -> List[Invitation]:
        criteria = [Invitation.status == status] if status is not None else []
        return await LedgerStore(db).list(Invitation, *criteria, order_by=[Invitation.created_at.desc()])

    @staticmethod
    @with_store_retry
    async def redeem(
        db: AsyncSession,
        token: str,
        password: str,
        client: ClientInfo = None,
    ) -> User:
        """
        Redeem an invitation into a new User.

        The invitation is marked Accepted, the user is created with a hashed
        credential and every invited role is assigned, all in one commit.

        Args:
            db: Database session
            token: Invitation token
            password: Credential chosen by the invitee

        Returns:
            The created user

        Raises:
            NotFound: The token is unknown
            AlreadyUsed: The invitation was accepted or cancelled
            Expired: The invitation is past its expiry
            ValidationFailed: The credential is too short
        """
        hint = SecurityUtils.token_hint(token)
        logger.info(f"Redeeming invitation {hint}")
        store = LedgerStore(db)

        async with invitation_locks.hold(token):
            async with store.unit_of_work():
                invitation = await store.find(Invitation, Invitation.token == token, for_update=True)
                if invitation is None:
                    raise NotFound("Invitation", hint)
                if invitation.status in (InvitationStatus.ACCEPTED, InvitationStatus.CANCELLED):
                    logger.warning(f"Invitation {hint} already {invitation.status.value}")
                    raise AlreadyUsed(hint, invitation.status.value)
                expires_at = as_utc(invitation.expires_at)
                if invitation.status == InvitationStatus.EXPIRED or utcnow() > expires_at:
                    logger.warning(f"Invitation {hint} expired at {expires_at}")
                    raise Expired(hint, expires_at)
                if not PasswordManager.is_acceptable(password):
                    raise ValidationFailed(
                        "password",
                        f"Password must be at least {settings.security.password_min_length} characters",
                    )
                if await store.exists(User, func.lower(User.email) == invitation.email.lower()):
                    raise ConstraintViolation(
                        f"A user with email {invitation.email} already exists", email=invitation.email
                    )

                accepted_at = utcnow()
                result = await store.execute(
                    update(Invitation)
                    .where(Invitation.id == invitation.id, Invitation.status == InvitationStatus.PENDING)
                    .values(status=InvitationStatus.ACCEPTED, accepted_at=accepted_at)
                    .execution_options(synchronize_session=False),
                    "accept invitation",
                )
                if result.rowcount == 0:
                    raise AlreadyUsed(hint, "Accepted")

                user = User(
                    first_name=invitation.first_name,
                    last_name=invitation.last_name,
                    email=invitation.email,
                    hashed_password=PasswordManager.get_password_hash(password),
                    department_id=invitation.department_id,
                    is_active=True,
                )
                await store.put(user)
                await store.put_all([
                    UserRole(user_id=user.id, role_id=UUID(str(role_id)), assigned_by=invitation.invited_by)
                    for role_id in invitation.role_ids
                ])
                log_action(
                    db,
                    action="REDEEM",
                    resource_type="INVITATION",
                    resource_id=invitation.id,
                    details={"user_id": user.id, "role_ids": invitation.role_ids},
                    user_id=user.id,
                    client=client,
                )

        await store.refresh(user)
        logger.info(f"Invitation {invitation.id} redeemed by new user {user.id}")
        return user

    @staticmethod
    @with_store_retry
    async def cancel(
        db: AsyncSession,
        invitation_id: UUID,
        actor: User,
        client: ClientInfo = None,
    ) -> Invitation:
        """
        Withdraw a Pending invitation.

        Raises:
            InvalidTransition: The invitation is no longer Pending
        """
        actor_id = actor_id_of(actor)
        logger.info(f"Cancelling invitation {invitation_id} by user {actor_id}")
        store = LedgerStore(db)
        token = (await store.get(Invitation, invitation_id)).token

        async with invitation_locks.hold(token):
            async with store.unit_of_work():
                user, _ = await load_active_actor(store, actor_id)
                invitation = await store.get(Invitation, invitation_id, for_update=True)
                result = await store.execute(
                    update(Invitation)
                    .where(Invitation.id == invitation.id, Invitation.status == InvitationStatus.PENDING)
                    .values(status=InvitationStatus.CANCELLED)
                    .execution_options(synchronize_session=False),
                    "cancel invitation",
                )
                if result.rowcount == 0:
                    raise InvalidTransition(
                        "Invitation", invitation.id, invitation.status.value, InvitationStatus.CANCELLED.value
                    )
                log_action(
                    db,
                    action="CANCEL",
                    resource_type="INVITATION",
                    resource_id=invitation.id,
                    user_id=user.id,
                    client=client,
                )
        await store.refresh(invitation)
        return invitation

    @staticmethod
    @with_store_retry
    async def expire_stale(db: AsyncSession) -> int:
        """
        Mark every Pending invitation past its expiry as Expired.

        Returns:
            Number of invitations expired
        """
        store = LedgerStore(db)
        async with store.unit_of_work():
            result = await store.execute(
                update(Invitation)
                .where(Invitation.status == InvitationStatus.PENDING, Invitation.expires_at < utcnow())
                .values(status=InvitationStatus.EXPIRED)
                .execution_options(synchronize_session=False),
                "expire invitations",
            )
            expired = result.rowcount or 0
            if expired:
                log_action(db, action="EXPIRE", resource_type="INVITATION", details={"count": expired})
        logger.info(f"Expired {expired} stale invitation(s)")
        return expired
